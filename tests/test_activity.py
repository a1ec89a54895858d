"""
Tests for the activity state machine.
"""

import asyncio

import pytest
from activity_core import Activity
from activity_core import ActivityError
from activity_core import ActivityFailed
from activity_core import ActivityState
from activity_core import AlreadyStartedError
from activity_core import ContentLoader
from activity_core.testing import RecordingPresentation
from activity_core.testing import StaticRetriever
from activity_core.testing import make_document
from activity_core.testing import wait_for


def new_activity(documents=None, presentation=None) -> Activity:
    return Activity(loader=ContentLoader(StaticRetriever(documents)), presentation=presentation)


@pytest.mark.asyncio
async def test_starts_pending_with_unsettled_result():
    activity = new_activity()

    assert activity.state is ActivityState.PENDING
    assert activity.state == "pending"
    assert not activity.result.done()


@pytest.mark.asyncio
async def test_finish_resolves_completed():
    activity = new_activity()

    activity.finish(42)

    assert activity.state is ActivityState.COMPLETED
    result = await activity.result
    assert result.status == "completed"
    assert result.value == 42


@pytest.mark.asyncio
async def test_fail_rejects_with_failed_status():
    activity = new_activity()
    error = ValueError("boom")

    activity.fail(error)

    assert activity.state is ActivityState.FAILED
    with pytest.raises(ActivityFailed) as exc_info:
        await activity.result
    assert exc_info.value.status == "failed"
    assert exc_info.value.error is error
    assert exc_info.value.result.status == "failed"
    assert exc_info.value.result.error is error


@pytest.mark.asyncio
async def test_fail_normalizes_non_exception():
    activity = new_activity()

    activity.fail("plain string")

    with pytest.raises(ActivityFailed) as exc_info:
        await activity.result
    assert isinstance(exc_info.value.error, ActivityError)
    assert str(exc_info.value.error) == "plain string"


@pytest.mark.asyncio
async def test_cancel_resolves_not_rejects():
    activity = new_activity()

    activity.cancel("timeout")

    assert activity.state is ActivityState.CANCELLED
    result = await activity.result
    assert result.status == "cancelled"
    assert result.reason == "timeout"


@pytest.mark.asyncio
async def test_cancel_without_reason_uses_default():
    activity = new_activity()

    activity.cancel()

    result = await activity.result
    assert result.reason == "cancelled"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "first, expected",
    [
        (("finish", 1), ActivityState.COMPLETED),
        (("fail", "x"), ActivityState.FAILED),
        (("cancel", "r"), ActivityState.CANCELLED),
    ],
)
async def test_only_first_terminal_call_counts(first, expected):
    activity = new_activity()
    method, arg = first

    getattr(activity, method)(arg)
    activity.finish(2)
    activity.fail("late")
    activity.cancel("late")

    assert activity.state is expected
    if expected is ActivityState.FAILED:
        with pytest.raises(ActivityFailed):
            await activity.result
    else:
        result = await activity.result
        assert result.status == expected.value
        if expected is ActivityState.COMPLETED:
            assert result.value == 1
        else:
            assert result.reason == "r"


@pytest.mark.asyncio
async def test_cancel_handlers_run_in_order_before_settlement():
    activity = new_activity()
    calls = []

    def make_handler(name):
        def handler(reason):
            calls.append((name, reason, activity.state, activity.result.done()))

        return handler

    activity.context.on_cancel(make_handler("first"))
    activity.context.on_cancel(make_handler("second"))
    activity.context.on_cancel(make_handler("third"))

    activity.cancel("stop")

    assert calls == [
        ("first", "stop", ActivityState.PENDING, False),
        ("second", "stop", ActivityState.PENDING, False),
        ("third", "stop", ActivityState.PENDING, False),
    ]
    assert activity.cancel_handler_count == 0


@pytest.mark.asyncio
async def test_cancel_handlers_run_exactly_once():
    activity = new_activity()
    calls = []
    activity.context.on_cancel(lambda reason: calls.append(reason))

    activity.cancel("a")
    activity.cancel("b")

    assert calls == ["a"]


@pytest.mark.asyncio
async def test_failing_cancel_handler_does_not_stop_others():
    activity = new_activity()
    calls = []

    def bad_handler(reason):
        calls.append("bad")
        raise ValueError("handler broke")

    activity.context.on_cancel(bad_handler)
    activity.context.on_cancel(lambda reason: calls.append("good"))

    activity.cancel("stop")

    assert calls == ["bad", "good"]
    result = await activity.result
    assert result.status == "cancelled"


@pytest.mark.asyncio
async def test_fatal_cancel_handler_reraised_after_transition():
    activity = new_activity()
    calls = []

    def fatal_handler(reason):
        calls.append(1)
        raise KeyboardInterrupt()

    activity.context.on_cancel(fatal_handler)
    activity.context.on_cancel(lambda reason: calls.append(2))

    with pytest.raises(KeyboardInterrupt):
        activity.cancel("stop")

    assert calls == [1, 2]
    assert activity.state is ActivityState.CANCELLED
    assert (await activity.result).reason == "stop"


@pytest.mark.asyncio
async def test_finish_from_cancel_handler_is_ignored():
    activity = new_activity()
    activity.context.on_cancel(lambda reason: activity.context.finish("sneaky"))

    activity.cancel("stop")

    result = await activity.result
    assert result.status == "cancelled"


@pytest.mark.asyncio
async def test_async_cancel_handler_is_scheduled():
    activity = new_activity()
    calls = []

    async def handler(reason):
        calls.append(reason)

    activity.context.on_cancel(handler)
    activity.cancel("stop")

    assert await wait_for(lambda: calls == ["stop"])


@pytest.mark.asyncio
async def test_on_cancel_ignores_non_callables_and_late_registrations():
    activity = new_activity()

    activity.context.on_cancel("not callable")
    activity.context.on_cancel(None)
    assert activity.cancel_handler_count == 0

    activity.finish(None)
    activity.context.on_cancel(lambda reason: None)
    assert activity.cancel_handler_count == 0


@pytest.mark.asyncio
async def test_finish_clears_cancel_handlers_without_calling_them():
    activity = new_activity()
    calls = []
    activity.context.on_cancel(lambda reason: calls.append(reason))

    activity.finish("done")

    assert calls == []
    assert activity.cancel_handler_count == 0


@pytest.mark.asyncio
async def test_capability_object_surface():
    activity = new_activity()
    ctx = activity.context

    assert ctx.state() == "pending"
    assert dict(ctx.params) == {}
    assert ctx.root is None

    ctx.finish("ok")

    assert ctx.state() == "completed"
    assert (await activity.result).value == "ok"


@pytest.mark.asyncio
async def test_capability_object_does_not_expose_instance():
    activity = new_activity()
    ctx = activity.context

    public = {name for name in dir(ctx) if not name.startswith("__")}
    assert public == {
        "state",
        "finish",
        "cancel",
        "fail",
        "on_cancel",
        "params",
        "root",
        "_get_params",
        "_get_root",
        "_describe",
    }
    assert not hasattr(ctx, "__dict__")
    assert not any(value is activity for name in public for value in [getattr(ctx, name)])

    with pytest.raises(AttributeError):
        ctx.extra = 1


@pytest.mark.asyncio
async def test_launch_twice_raises_already_started():
    doc = make_document(
        """
        def on_create(activity, params):
            pass

        exports["on_create"] = on_create
        """
    )
    activity = new_activity({"a.html": doc})

    task = activity.launch("a.html")
    with pytest.raises(AlreadyStartedError):
        activity.launch("a.html")

    handle = await task
    assert handle.instance is activity
    assert handle.state() == "pending"


@pytest.mark.asyncio
async def test_launch_after_terminal_raises_already_started():
    activity = new_activity()
    activity.finish(1)

    with pytest.raises(AlreadyStartedError) as exc_info:
        activity.launch("anything.html")

    assert exc_info.value.state == "completed"


@pytest.mark.asyncio
async def test_params_are_read_only_copy():
    doc = make_document("exports['on_create'] = lambda activity, params: None")
    activity = new_activity({"a.html": doc})
    original = {"x": 1}

    await activity.launch("a.html", original)
    original["x"] = 2

    assert activity.params["x"] == 1
    with pytest.raises(TypeError):
        activity.params["x"] = 3  # type: ignore[index]


@pytest.mark.asyncio
async def test_presentation_attached_once_and_detached_once():
    doc = make_document(
        """
        def on_create(activity, params):
            pass

        exports["on_create"] = on_create
        """,
        markup="<p>hello</p>",
    )
    presentation = RecordingPresentation()
    activity = new_activity({"a.html": doc}, presentation=presentation)

    await activity.launch("a.html", container="main-panel")
    assert presentation.attached == [(activity.activity_id, "<p>hello</p>", "main-panel")]
    assert presentation.detached == []

    activity.finish(None)
    activity.cancel("late")

    assert presentation.detached == [activity.activity_id]


@pytest.mark.asyncio
async def test_cancelled_result_future_cancels_activity():
    doc = make_document(
        """
        def on_create(activity, params):
            pass

        exports["on_create"] = on_create
        """
    )
    activity = new_activity({"a.html": doc})
    handle = await activity.launch("a.html")

    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(handle.result, 0.01)

    assert await wait_for(lambda: activity.state is ActivityState.CANCELLED)
