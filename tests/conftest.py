"""Pytest configuration and fixtures."""

import json
from pathlib import Path

import pytest

# Enable pytest-asyncio for all tests
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture
def project_tree(tmp_path: Path) -> Path:
    """A small TypeScript project with manifests, sources and vendored code."""
    root = tmp_path / "shop"
    (root / "src" / "components").mkdir(parents=True)
    (root / "src" / "auth").mkdir(parents=True)
    (root / "tests").mkdir()
    (root / "node_modules" / "react").mkdir(parents=True)

    package = {
        "name": "shop",
        "description": "Storefront web app",
        "dependencies": {"react": "^18.2.0", "pg": "^8.11.0"},
        "devDependencies": {"typescript": "^5.4.0", "vitest": "^1.6.0"},
        "scripts": {"dev": "vite", "build": "vite build", "test": "vitest"},
    }
    (root / "package.json").write_text(json.dumps(package))
    (root / "package-lock.json").write_text("{}")

    (root / "src" / "components" / "Button.tsx").write_text(
        "import React from 'react';\n"
        "\n"
        "type ButtonProps = { label: string; onClick: () => void };\n"
        "\n"
        "export function Button({ label, onClick }: ButtonProps) {\n"
        "  return <button className=\"btn\" onClick={onClick}>{label}</button>;\n"
        "}\n"
    )
    (root / "src" / "auth" / "session.ts").write_text(
        "import { Pool } from 'pg';\n"
        "\n"
        "const pool = new Pool();\n"
        "\n"
        "export async function createSession(userId: string) {\n"
        "  const result = await pool.query(\n"
        "    'INSERT INTO sessions (user_id) VALUES ($1) RETURNING id',\n"
        "    [userId],\n"
        "  );\n"
        "  return result.rows[0].id;\n"
        "}\n"
    )
    (root / "tests" / "session.test.ts").write_text(
        "import { createSession } from '../src/auth/session';\n"
    )
    (root / "node_modules" / "react" / "index.js").write_text(
        "export function createSession() {}\n"
    )
    return root
