"""Tests for exception hierarchy."""

from chat_digest.exceptions import (
    ChatDigestError,
    ConfigurationError,
    DispatchError,
    EmptyCompletionError,
    ModelError,
    StorageError,
)


def test_all_inherit_from_base():
    for exc_class in [
        ConfigurationError,
        StorageError,
        ModelError,
        EmptyCompletionError,
        DispatchError,
    ]:
        assert issubclass(exc_class, ChatDigestError)


def test_model_hierarchy():
    assert issubclass(EmptyCompletionError, ModelError)
    assert not issubclass(DispatchError, ModelError)


def test_exception_message():
    e = StorageError("test error")
    assert str(e) == "test error"
