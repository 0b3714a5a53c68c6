"""Tests for Action and Executable."""

import dataclasses

import pytest

from statehold import Action, ActionType, CallbackError, Executable


class TestAction:
    def test_defaults_to_plain_action(self):
        assert Action("go", print).action_type is ActionType.ACTION

    def test_is_immutable(self):
        action = Action("go", print)
        with pytest.raises(dataclasses.FrozenInstanceError):
            action.name = "stop"


class TestExecutable:
    def test_call_passes_params(self):
        executable = Executable(Action("add", lambda a, b: a + b), (1, 2))
        assert executable.call() == 3

    def test_missing_callback_returns_none(self):
        assert Executable(Action("none", None)).call() is None

    def test_call_wraps_errors(self):
        def boom():
            raise ValueError("bad input")

        with pytest.raises(CallbackError, match="bad input") as info:
            Executable(Action("boom", boom)).call()
        assert isinstance(info.value.__cause__, ValueError)

    def test_empty_message_names_the_action(self):
        def boom():
            raise KeyError()

        with pytest.raises(CallbackError, match="boom failed with KeyError"):
            Executable(Action("boom", boom)).call()

    def test_callback_error_is_not_rewrapped(self):
        original = CallbackError("inner")

        def boom():
            raise original

        with pytest.raises(CallbackError) as info:
            Executable(Action("boom", boom)).call()
        assert info.value is original

    @pytest.mark.asyncio
    async def test_execute_sync_callback(self):
        assert await Executable(Action("double", lambda x: x * 2), (4,)).execute() == 8

    @pytest.mark.asyncio
    async def test_execute_awaits_coroutines(self):
        async def fetch(value):
            return value + 1

        assert await Executable(Action("fetch", fetch), (1,)).execute() == 2

    @pytest.mark.asyncio
    async def test_execute_wraps_async_errors(self):
        async def fail():
            raise RuntimeError("offline")

        with pytest.raises(CallbackError, match="offline") as info:
            await Executable(Action("fail", fail)).execute()
        assert isinstance(info.value.__cause__, RuntimeError)

    def test_repr(self):
        executable = Executable(Action("go", print), (1,))
        assert repr(executable) == "Executable('go', ACTION, params=(1,))"
