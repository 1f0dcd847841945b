"""Pytest configuration: local LLM, non-strict settings and a throwaway store."""

import os
import tempfile
from pathlib import Path

import pytest

# 設定はモジュール import 時に読み込まれるため、flashvocab を import する前に環境を整える。
os.environ.setdefault("STRICT_MODE", "false")
os.environ.setdefault("LLM_PROVIDER", "local")
os.environ.setdefault(
    "STORE_DB_PATH",
    str(Path(tempfile.mkdtemp(prefix="flashvocab-tests-")) / "store.sqlite3"),
)


@pytest.fixture()
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "store.sqlite3")
