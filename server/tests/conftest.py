import os
import sys
import pytest

# ──────────────────────────────────────────────────────────────────────────────
# Make sure the `server/` dir (the parent of tests/) is on sys.path so that
# `import services.registry` (and all the other imports) work.
# ──────────────────────────────────────────────────────────────────────────────
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

# fmt: off
from services.registry import StreamRegistry
from services.relay import SessionRelay
# fmt: on


@pytest.fixture
def registry():
    return StreamRegistry()


@pytest.fixture
def relay(registry):
    return SessionRelay(registry)


def events_for(notes, target):
    """Event names addressed to ``target``, in emission order."""
    return [n.event for n in notes if n.target == target]


def payload_of(notes, target, event):
    matches = [n.payload for n in notes if n.target == target and n.event == event]
    assert len(matches) == 1, f"expected one {event} for {target}, got {len(matches)}"
    return matches[0]
