from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))


import pytest

from stackcontext.scope import handle_scope


@pytest.fixture(autouse=True)
def _handle_scope_fixture():
    with handle_scope() as handle:
        yield handle


@pytest.fixture
def handle(_handle_scope_fixture):
    return _handle_scope_fixture
