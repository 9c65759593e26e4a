"""Hook bus: named extension points folded as sequential reducers.

Handlers registered under a hook name run left to right.  Each receives the
value returned by the previous handler and returns the value for the next;
the last value is the result of :meth:`HookBus.run`.  A handler returning
``None`` passes its input through unchanged, so observers that mutate the
payload in place need not return it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from stackgen.core.plugin import HookHandler, HookType, call_maybe_async, hook_key
from stackgen.utils import print_error


class HookError(Exception):
    """A hook handler failed; carries the hook and the owning plugin."""

    def __init__(
        self,
        hook_name: str,
        plugin_name: Optional[str],
        original: BaseException,
    ) -> None:
        self.hook_name = hook_name
        self.plugin_name = plugin_name
        self.original = original
        owner = f" in plugin '{plugin_name}'" if plugin_name else ""
        super().__init__(f"Hook '{hook_name}'{owner} failed: {original}")


@dataclass(frozen=True)
class _Registration:
    handler: HookHandler
    owner: Optional[str]


class HookBus:
    """Ordered handler lists keyed by hook name."""

    def __init__(self, verbose: bool = False) -> None:
        self.verbose = verbose
        self._hooks: dict[str, list[_Registration]] = {}

    def register(
        self,
        hook_name: HookType | str,
        handler: HookHandler,
        owner: Optional[str] = None,
    ) -> None:
        """Append *handler* to the list for *hook_name*.

        ``owner`` is the contributing plugin's name, used for error
        attribution and for :meth:`unregister_owner`.
        """
        self._hooks.setdefault(hook_key(hook_name), []).append(_Registration(handler, owner))

    def unregister_owner(self, owner: str) -> int:
        """Remove every handler contributed by *owner*; return how many."""
        removed = 0
        for name in list(self._hooks):
            kept = [reg for reg in self._hooks[name] if reg.owner != owner]
            removed += len(self._hooks[name]) - len(kept)
            if kept:
                self._hooks[name] = kept
            else:
                del self._hooks[name]
        return removed

    async def run(self, hook_name: HookType | str, initial: Any = None) -> Any:
        """Fold the handlers of *hook_name* over *initial*.

        Raises:
            HookError: On the first failing handler; later handlers never run.
        """
        name = hook_key(hook_name)
        value = {} if initial is None else initial

        for reg in list(self._hooks.get(name, [])):
            try:
                result = await call_maybe_async(reg.handler, value)
            except Exception as exc:
                if self.verbose:
                    owner = f" in plugin '{reg.owner}'" if reg.owner else ""
                    print_error(f"Hook '{name}'{owner} failed: {exc}")
                raise HookError(name, reg.owner, exc) from exc
            if result is not None:
                value = result

        return value

    def hook_names(self) -> list[str]:
        return list(self._hooks)

    def count(self, hook_name: HookType | str | None = None) -> int:
        """Number of handlers for one hook, or across all hooks."""
        if hook_name is not None:
            return len(self._hooks.get(hook_key(hook_name), []))
        return sum(len(regs) for regs in self._hooks.values())
