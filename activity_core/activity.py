"""
Activity runtime - one launched instance of an activity document.

State machine:
    pending -> completed  (finish)
    pending -> failed     (fail, or any loading/execution error)
    pending -> cancelled  (cancel)

The first terminal trigger wins; every later call to finish/fail/cancel is a
silent no-op. The check-and-set never awaits, so on a single event loop no
lock is needed.

Cancellation is cooperative: cancel handlers are told, the instance goes
terminal, but hook coroutines that are already running are not interrupted.
"""

import asyncio
import inspect
import logging
import uuid
from collections.abc import Callable
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from .errors import ActivityFailed
from .errors import ActivityRuntimeError
from .errors import AlreadyStartedError
from .errors import normalize_error
from .loader import ContentLoader
from .models import ActivityResult
from .models import ActivityState
from .presentation import NullPresentation
from .presentation import PresentationSink
from .sandbox import EMPTY_EXPORTS
from .sandbox import ExecutionSandbox

logger = logging.getLogger(__name__)

DEFAULT_CANCEL_REASON = "cancelled"


def _hook_error(hook_name: str, error: BaseException) -> ActivityRuntimeError:
    wrapped = ActivityRuntimeError(f"{hook_name}: {type(error).__name__}: {error}")
    wrapped.__cause__ = error
    return wrapped


async def _contain_exit(awaitable: Any, hook_name: str) -> Any:
    # SystemExit raised inside a task would otherwise stop the event loop
    try:
        return await awaitable
    except SystemExit as e:
        raise _hook_error(hook_name, e) from e


class ActivityContext:
    """
    Capability object handed to activity code as ``activity``.

    Exposes only what an activity needs to drive its own lifecycle:
    state(), finish(), cancel(), fail(), on_cancel(), params and root.
    The owning instance is held in closures, not as an attribute.
    """

    __slots__ = ("state", "finish", "cancel", "fail", "on_cancel", "_get_params", "_get_root", "_describe")

    state: Callable[[], ActivityState]
    finish: Callable[..., None]
    cancel: Callable[..., None]
    fail: Callable[[Any], None]
    on_cancel: Callable[[Callable[[str], Any]], None]

    def __init__(self, activity: "Activity"):
        def state() -> ActivityState:
            return activity.state

        def finish(value: Any = None) -> None:
            activity.finish(value)

        def cancel(reason: str | None = None) -> None:
            activity.cancel(reason)

        def fail(error: Any) -> None:
            activity.fail(error)

        def on_cancel(handler: Callable[[str], Any]) -> None:
            """Register a handler called with the reason when the activity is cancelled."""
            activity._add_cancel_handler(handler)

        self.state = state
        self.finish = finish
        self.cancel = cancel
        self.fail = fail
        self.on_cancel = on_cancel
        self._get_params = lambda: activity.params
        self._get_root = lambda: activity.container
        self._describe = lambda: f"{activity.activity_id} state={activity.state}"

    @property
    def params(self) -> Mapping[str, Any]:
        return self._get_params()

    @property
    def root(self) -> Any:
        """Presentation container reference, for presentation collaborators."""
        return self._get_root()

    def __repr__(self) -> str:
        return f"<ActivityContext {self._describe()}>"


@dataclass(frozen=True)
class LaunchHandle:
    """What the launcher gets back: the result future plus cancel/state accessors."""

    instance: "Activity"

    @property
    def result(self) -> "asyncio.Future[ActivityResult]":
        return self.instance.result

    def cancel(self, reason: str | None = None) -> None:
        self.instance.cancel(reason)

    def state(self) -> ActivityState:
        return self.instance.state


class Activity:
    """
    A single activity instance. Never reused.

    Must be created while an event loop is running (the result future is
    bound to it).
    """

    def __init__(
        self,
        loader: ContentLoader,
        sandbox: ExecutionSandbox | None = None,
        presentation: PresentationSink | None = None,
        activity_id: str | None = None,
    ):
        """
        Args:
            loader: Retrieves and splits the activity document
            sandbox: Runs the activity code (default sandbox if None)
            presentation: Receives the markup (headless if None)
            activity_id: Optional ID (generates one if not provided)
        """
        self.activity_id = activity_id or uuid.uuid4().hex[:12]
        self._loader = loader
        self._sandbox = sandbox or ExecutionSandbox()
        self._presentation: PresentationSink = presentation or NullPresentation()
        self._loop = asyncio.get_running_loop()

        self._state = ActivityState.PENDING
        self._settling = False
        self._launched = False
        self._detached = False
        self._params: Mapping[str, Any] = MappingProxyType({})
        self._exports: Mapping[str, Callable] = EMPTY_EXPORTS
        self._cancel_handlers: list[Callable[[str], Any]] = []
        self._tasks: set[asyncio.Future] = set()

        self.source_locator: str | None = None
        self.container: Any = None
        self.context = ActivityContext(self)
        self.handle = LaunchHandle(self)

        self.result: asyncio.Future[ActivityResult] = self._loop.create_future()
        self.result.add_done_callback(self._on_result_done)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> ActivityState:
        return self._state

    @property
    def is_pending(self) -> bool:
        return self._state is ActivityState.PENDING and not self._settling

    @property
    def params(self) -> Mapping[str, Any]:
        return self._params

    @property
    def exports(self) -> Mapping[str, Callable]:
        return self._exports

    @property
    def cancel_handler_count(self) -> int:
        return len(self._cancel_handlers)

    def __repr__(self) -> str:
        return f"<Activity {self.activity_id} state={self._state} source={self.source_locator!r}>"

    # ------------------------------------------------------------------
    # Launch
    # ------------------------------------------------------------------

    def launch(
        self,
        source_locator: str,
        params: Mapping[str, Any] | None = None,
        container: Any = None,
    ) -> "asyncio.Task[LaunchHandle]":
        """
        Start loading and running the activity.

        The returned task always resolves to the launch handle; how the
        activity ends is reported only through ``handle.result``.

        Raises:
            AlreadyStartedError: If this instance was already launched or is terminal
        """
        if self._launched or not self.is_pending:
            raise AlreadyStartedError(self.activity_id, self._state.value)

        self._launched = True
        self._params = MappingProxyType(dict(params or {}))
        self.source_locator = source_locator
        self.container = container
        return self._loop.create_task(self._launch(source_locator))

    async def _launch(self, source_locator: str) -> LaunchHandle:
        logger.info(f"[activity:launch] {self.activity_id} from {source_locator}")

        try:
            content = await self._loader.load(source_locator)
        except asyncio.CancelledError:
            self.cancel("launch interrupted")
            raise
        except Exception as e:
            logger.error(f"Failed to load activity {self.activity_id} from {source_locator}: {e}")
            self.fail(e)
            return self.handle

        if not self.is_pending:
            # Cancelled while the document was being fetched
            return self.handle

        self._exports = self._sandbox.run(
            content.executable_text, self.context, filename=f"<activity:{source_locator}>"
        )

        if not self.is_pending:
            return self.handle

        try:
            self._presentation.attach(content.declarative_content, self.container, self)
        except Exception as e:
            logger.error(f"Presentation attach failed for activity {self.activity_id}: {e}")
            self.fail(e)
            return self.handle

        self._invoke_on_create()
        return self.handle

    def _invoke_on_create(self) -> None:
        hook = self._exports.get("on_create")
        if not callable(hook):
            logger.debug(f"Activity {self.activity_id} exports no on_create hook")
            return

        try:
            outcome = hook(self.context, self._params)
        except (Exception, SystemExit) as e:
            logger.error(f"Error in on_create of activity {self.activity_id}: {e}")
            self.fail(_hook_error("on_create", e))
            return

        if inspect.isawaitable(outcome):
            self._track(outcome, self._on_create_done, "on_create")

    def _on_create_done(self, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            if self.is_pending:
                logger.error(f"on_create of activity {self.activity_id} was cancelled before settling")
                self.fail(_hook_error("on_create", asyncio.CancelledError()))
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Error in on_create of activity {self.activity_id}: {error}")
            if not isinstance(error, ActivityRuntimeError):
                error = _hook_error("on_create", error)
            self.fail(error)

    # ------------------------------------------------------------------
    # Terminal triggers
    # ------------------------------------------------------------------

    def finish(self, value: Any = None) -> None:
        """Complete the activity with ``value``. No-op unless pending."""
        if not self._begin_transition():
            return
        self._settle(ActivityState.COMPLETED, ActivityResult.completed(value))

    def fail(self, error: Any) -> None:
        """Fail the activity. Non-exception values are wrapped. No-op unless pending."""
        if not self._begin_transition():
            return
        error = normalize_error(error)
        result = ActivityResult.failed(error)
        self._settle(ActivityState.FAILED, result, ActivityFailed(error, result))

    def cancel(self, reason: str | None = None) -> None:
        """
        Cancel the activity. No-op unless pending.

        Every cancel handler runs, in registration order, before the state
        changes. A handler that raises does not stop the others. Fatal
        exceptions (KeyboardInterrupt, SystemExit) are re-raised once the
        transition is complete.
        """
        if not self._begin_transition():
            return
        reason = reason or DEFAULT_CANCEL_REASON
        first_fatal = self._run_cancel_handlers(reason)
        self._settle(ActivityState.CANCELLED, ActivityResult.cancelled(reason))
        if first_fatal is not None:
            raise first_fatal

    def _begin_transition(self) -> bool:
        if not self.is_pending:
            return False
        self._settling = True
        return True

    def _settle(
        self,
        state: ActivityState,
        result: ActivityResult,
        error: BaseException | None = None,
    ) -> None:
        self._state = state
        logger.info(f"[activity:{state.value}] {self.activity_id}")

        self._call_on_destroy()

        if not self.result.done():
            if error is not None:
                self.result.set_exception(error)
            else:
                self.result.set_result(result)

        self._teardown()

    def _run_cancel_handlers(self, reason: str) -> BaseException | None:
        first_fatal = None
        for handler in list(self._cancel_handlers):
            try:
                outcome = handler(reason)
                if inspect.isawaitable(outcome):
                    self._track(outcome, self._discard_outcome, "cancel handler")
            except asyncio.CancelledError:
                logger.warning(f"CancelledError in cancel handler of activity {self.activity_id}")
            except Exception as e:
                logger.warning(f"Error in cancel handler of activity {self.activity_id}: {e}")
            except BaseException as e:
                logger.warning(f"Fatal exception in cancel handler of activity {self.activity_id}: {e}")
                if first_fatal is None:
                    first_fatal = e
        return first_fatal

    def _call_on_destroy(self) -> None:
        hook = self._exports.get("on_destroy")
        if not callable(hook):
            return
        try:
            outcome = hook(self.context)
        except (Exception, SystemExit) as e:
            logger.debug(f"Ignored error in on_destroy of activity {self.activity_id}: {e}")
            return
        if inspect.isawaitable(outcome):
            self._track(outcome, self._discard_outcome, "on_destroy")

    def _teardown(self) -> None:
        self._cancel_handlers.clear()
        if self._detached:
            return
        self._detached = True
        try:
            self._presentation.detach(self)
        except Exception as e:
            logger.warning(f"Presentation detach failed for activity {self.activity_id}: {e}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _add_cancel_handler(self, handler: Any) -> None:
        if not callable(handler):
            logger.debug(f"Ignored non-callable cancel handler for activity {self.activity_id}")
            return
        if not self.is_pending:
            return
        self._cancel_handlers.append(handler)

    def _track(self, awaitable: Any, on_done: Callable[[asyncio.Future], None], hook_name: str) -> None:
        task = asyncio.ensure_future(_contain_exit(awaitable, hook_name), loop=self._loop)
        self._tasks.add(task)
        task.add_done_callback(on_done)

    def _discard_outcome(self, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Ignored error in background hook of activity {self.activity_id}: {task.exception()}")

    def _on_result_done(self, future: asyncio.Future) -> None:
        # asyncio.wait_for(handle.result, ...) cancels the future on timeout
        if future.cancelled() and self.is_pending:
            self.cancel(DEFAULT_CANCEL_REASON)
