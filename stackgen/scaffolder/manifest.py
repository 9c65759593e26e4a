"""package.json construction and merging.

``build_package_json`` produces the manifest for a ``ProjectConfig`` by
layering per-technology fragments over a base document with
``merge_package_json``.  Merging is a recursive dict merge: nested mappings
(``dependencies``, ``scripts``...) merge key-wise with the overlay winning,
lists are concatenated without duplicates, scalars are replaced.
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

from stackgen.config import ORM, Addon, Auth, Backend, Database, Frontend, ProjectConfig
from stackgen.utils import load_json, save_json

_BACKEND_DEPS: dict[Backend, dict[str, dict[str, str]]] = {
    Backend.EXPRESS: {"dependencies": {"express": "^4.19.2", "cors": "^2.8.5"}},
    Backend.FASTIFY: {"dependencies": {"fastify": "^4.26.2"}},
    Backend.KOA: {"dependencies": {"koa": "^2.15.3", "@koa/router": "^12.0.1"}},
    Backend.HAPI: {"dependencies": {"@hapi/hapi": "^21.3.9"}},
    Backend.NESTJS: {"dependencies": {"@nestjs/core": "^10.3.8", "@nestjs/common": "^10.3.8"}},
    Backend.TRPC: {"dependencies": {"@trpc/server": "^10.45.2", "zod": "^3.23.8"}},
    Backend.HONO: {"dependencies": {"hono": "^4.3.7"}},
}

_DATABASE_DEPS: dict[Database, dict[str, dict[str, str]]] = {
    Database.SQLITE: {"dependencies": {"better-sqlite3": "^9.6.0"}},
    Database.POSTGRES: {"dependencies": {"pg": "^8.11.5"}},
    Database.MYSQL: {"dependencies": {"mysql2": "^3.9.7"}},
    Database.MONGODB: {"dependencies": {"mongodb": "^6.6.2"}},
    Database.SUPABASE: {"dependencies": {"@supabase/supabase-js": "^2.43.1"}},
    Database.PLANETSCALE: {"dependencies": {"@planetscale/database": "^1.17.0"}},
}

_ORM_DEPS: dict[ORM, dict[str, dict[str, str]]] = {
    ORM.PRISMA: {"dependencies": {"@prisma/client": "^5.13.0"}, "devDependencies": {"prisma": "^5.13.0"}},
    ORM.SEQUELIZE: {"dependencies": {"sequelize": "^6.37.3"}},
    ORM.MONGOOSE: {"dependencies": {"mongoose": "^8.3.4"}},
    ORM.TYPEORM: {"dependencies": {"typeorm": "^0.3.20", "reflect-metadata": "^0.2.2"}},
    ORM.DRIZZLE: {"dependencies": {"drizzle-orm": "^0.30.10"}, "devDependencies": {"drizzle-kit": "^0.21.2"}},
}

_FRONTEND_DEPS: dict[Frontend, dict[str, dict[str, str]]] = {
    Frontend.REACT: {
        "dependencies": {"react": "^18.3.1", "react-dom": "^18.3.1"},
        "devDependencies": {"vite": "^5.2.11", "@vitejs/plugin-react": "^4.2.1"},
    },
    Frontend.VUE: {
        "dependencies": {"vue": "^3.4.27"},
        "devDependencies": {"vite": "^5.2.11", "@vitejs/plugin-vue": "^5.0.4"},
    },
    Frontend.SVELTE: {"devDependencies": {"svelte": "^4.2.17", "vite": "^5.2.11"}},
    Frontend.NEXTJS: {"dependencies": {"next": "^14.2.3", "react": "^18.3.1", "react-dom": "^18.3.1"}},
    Frontend.NUXT: {"dependencies": {"nuxt": "^3.11.2"}},
    Frontend.ANGULAR: {"dependencies": {"@angular/core": "^17.3.9"}},
    Frontend.REMIX: {"dependencies": {"@remix-run/react": "^2.9.2"}},
    Frontend.ASTRO: {"dependencies": {"astro": "^4.8.6"}},
    Frontend.SVELTEKIT: {"devDependencies": {"@sveltejs/kit": "^2.5.10"}},
    Frontend.REACT_NATIVE: {"dependencies": {"react-native": "^0.74.1"}},
}

_AUTH_DEPS: dict[Auth, dict[str, dict[str, str]]] = {
    Auth.JWT: {"dependencies": {"jsonwebtoken": "^9.0.2", "bcryptjs": "^2.4.3"}},
    Auth.PASSPORT: {"dependencies": {"passport": "^0.7.0", "passport-local": "^1.0.0"}},
    Auth.AUTH0: {"dependencies": {"express-openid-connect": "^2.17.1"}},
    Auth.OAUTH: {"dependencies": {"simple-oauth2": "^5.0.0"}},
    Auth.NEXTAUTH: {"dependencies": {"next-auth": "^4.24.7"}},
    Auth.SUPABASE: {"dependencies": {"@supabase/auth-helpers-shared": "^0.7.0"}},
    Auth.LUCIA: {"dependencies": {"lucia": "^3.2.0"}},
    Auth.BETTER_AUTH: {"dependencies": {"better-auth": "^0.5.0"}},
}

_ADDON_FRAGMENTS: dict[Addon, dict[str, dict[str, str]]] = {
    Addon.ESLINT: {"devDependencies": {"eslint": "^9.2.0"}, "scripts": {"lint": "eslint ."}},
    Addon.PRETTIER: {"devDependencies": {"prettier": "^3.2.5"}, "scripts": {"format": "prettier --write ."}},
    Addon.HUSKY: {"devDependencies": {"husky": "^9.0.11"}, "scripts": {"prepare": "husky"}},
    Addon.TESTING: {"devDependencies": {"jest": "^29.7.0"}, "scripts": {"test": "jest"}},
    Addon.JEST: {"devDependencies": {"jest": "^29.7.0"}, "scripts": {"test": "jest"}},
    Addon.VITEST: {"devDependencies": {"vitest": "^1.6.0"}, "scripts": {"test": "vitest run"}},
    Addon.TAILWIND: {"devDependencies": {"tailwindcss": "^3.4.3", "postcss": "^8.4.38"}},
    Addon.TYPESCRIPT: {"devDependencies": {"typescript": "^5.4.5"}, "scripts": {"typecheck": "tsc --noEmit"}},
    Addon.BIOME: {"devDependencies": {"@biomejs/biome": "^1.7.3"}, "scripts": {"check": "biome check ."}},
}


def merge_package_json(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Return a new manifest with *overlay* merged over *base*.

    Neither argument is modified.
    """
    merged = copy.deepcopy(base)
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_package_json(current, value)
        elif isinstance(current, list) and isinstance(value, list):
            merged[key] = current + [item for item in value if item not in current]
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def base_package_json(config: ProjectConfig) -> dict[str, Any]:
    frontends = ", ".join(f.value for f in config.frontend) or "none"
    keywords = [config.backend.value, *(f.value for f in config.frontend), config.database.value]
    return {
        "name": config.project_name,
        "version": "1.0.0",
        "description": f"A {config.backend.value} + {frontends} application",
        "main": "index.js",
        "scripts": {
            "start": "node index.js",
            "dev": "node --watch index.js",
            "build": "echo 'Build completed'",
            "test": "echo 'No tests specified'",
        },
        "dependencies": {},
        "devDependencies": {},
        "keywords": [k for k in keywords if k != "none"],
        "license": "MIT",
        "engines": {"node": ">=18.0.0"},
    }


def technology_fragments(config: ProjectConfig) -> list[dict[str, Any]]:
    """Fragments contributed by each selected technology, in merge order."""
    fragments: list[dict[str, Any]] = []
    if config.has_backend:
        fragments.append(_BACKEND_DEPS.get(config.backend, {}))
        fragments.append({"scripts": {"start:backend": "node backend/src/server.js"}})
    if config.has_database:
        fragments.append(_DATABASE_DEPS.get(config.database, {}))
    if config.has_orm:
        fragments.append(_ORM_DEPS.get(config.orm, {}))
    if config.has_frontend:
        for frontend in config.frontend:
            fragments.append(_FRONTEND_DEPS.get(frontend, {}))
        fragments.append({"scripts": {"dev:frontend": "vite frontend"}})
    if config.has_auth:
        fragments.append(_AUTH_DEPS.get(config.auth, {}))
    for addon in config.addons:
        fragments.append(_ADDON_FRAGMENTS.get(addon, {}))
    if config.typescript and Addon.TYPESCRIPT not in config.addons:
        fragments.append(_ADDON_FRAGMENTS[Addon.TYPESCRIPT])
    return fragments


def build_package_json(config: ProjectConfig) -> dict[str, Any]:
    manifest = base_package_json(config)
    for fragment in technology_fragments(config):
        manifest = merge_package_json(manifest, fragment)
    return manifest


async def write_package_json(manifest: dict[str, Any], project_dir: str | Path) -> Path:
    """Write *manifest* to ``<project_dir>/package.json``.

    An existing manifest (e.g. one rendered from a template layer) is merged
    under the new one rather than overwritten.
    """
    target = Path(project_dir) / "package.json"
    if target.exists():
        manifest = merge_package_json(load_json(target), manifest)
    return await save_json(manifest, target)
