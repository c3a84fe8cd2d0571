from datetime import timedelta

import pytest

from mcpgate.session import BackendId, Binding, SessionId


def test_session_id_equality_and_hashing():
    a = SessionId("s-1")
    b = SessionId("s-1")
    assert a == b
    assert {a: "x"}[b] == "x"
    assert SessionId("s-2") != a


def test_ids_render_as_their_value():
    assert str(SessionId("s-1")) == "s-1"
    assert str(BackendId("mcp-oxide-adapter-a")) == "mcp-oxide-adapter-a"


def test_binding_holds_fields():
    binding = Binding(
        session=SessionId("s-1"),
        adapter="weather",
        backend=BackendId("b-1"),
        ttl=timedelta(minutes=5),
    )
    assert binding.backend == BackendId("b-1")
    assert binding.ttl == timedelta(minutes=5)
    assert binding.adapter == "weather"


def test_binding_is_immutable():
    binding = Binding(SessionId("s"), "a", BackendId("b"), timedelta(seconds=1))
    with pytest.raises(AttributeError):
        binding.adapter = "other"  # type: ignore[misc]
    assert binding.adapter == "a"
    assert binding.session == SessionId("s")