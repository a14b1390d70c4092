"""
Notifier results and detached dispatch

Domain notifiers report outcomes as NotificationResult values instead of
raising. Callers that must not wait on notification delivery hand the
work to dispatch_detached, which runs it in its own session.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Set, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
import asyncio
import functools
import logging

from app.core.database import AsyncSessionLocal
from .errors import RecipientUnresolvedError
from .realtime import discard_events_since, staged_event_count

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class NotificationResult:
    """Outcome of one notifier call"""

    success: bool
    error: Optional[str] = None
    skipped: bool = False
    reason: Optional[str] = None
    notification_id: Optional[str] = None
    created: int = 0
    sent: int = 0
    errors: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def ok(cls, notification_id: Optional[str] = None, created: int = 0, sent: int = 0) -> "NotificationResult":
        return cls(success=True, notification_id=notification_id, created=created, sent=sent)

    @classmethod
    def skip(cls, reason: str) -> "NotificationResult":
        """A skip is a success: nothing was wrong, nothing was delivered"""
        return cls(success=True, skipped=True, reason=reason)

    @classmethod
    def failure(cls, error: str, errors: Iterable[str] = ()) -> "NotificationResult":
        return cls(success=False, error=error, errors=tuple(errors) or (error,))

    @classmethod
    def combine(cls, results: Iterable["NotificationResult"], any_success: bool = False) -> "NotificationResult":
        """
        Aggregate several results into one

        By default every part must succeed; with any_success a single
        successful part is enough.
        """
        results = list(results)
        if not results:
            return cls.ok()

        errors = tuple(e for r in results for e in (r.errors or ((r.error,) if r.error else ())))
        succeeded = [r.success for r in results]
        success = any(succeeded) if any_success else all(succeeded)

        return cls(
            success=success,
            error=None if success else "; ".join(errors) or "Notification failed",
            skipped=all(r.skipped for r in results),
            created=sum(r.created for r in results),
            sent=sum(r.sent for r in results),
            errors=errors,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["errors"] = list(self.errors)
        return data

def safe_notify(func: Callable[..., Awaitable[NotificationResult]]):
    """
    Turn any exception raised by a notifier into a failed result

    Methods of objects holding a session run inside a savepoint, so a
    failed notifier leaves the caller's transaction usable and none of
    its partial writes or realtime events behind.
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs) -> NotificationResult:
        session = getattr(args[0], "db", None) if args else None
        if not isinstance(session, AsyncSession):
            session = None
        staged = staged_event_count(session) if session is not None else 0

        try:
            if session is None:
                return await func(*args, **kwargs)
            async with session.begin_nested():
                return await func(*args, **kwargs)
        except RecipientUnresolvedError as e:
            logger.warning(f"{func.__qualname__}: recipient unresolved: {e}")
            if session is not None:
                discard_events_since(session, staged)
            return NotificationResult.skip(str(e))
        except Exception as e:
            logger.error(f"{func.__qualname__} failed: {e}", exc_info=True)
            if session is not None:
                discard_events_since(session, staged)
            return NotificationResult.failure(str(e))

    return wrapper

# Strong references so pending tasks are not garbage collected
_background_tasks: Set[asyncio.Task] = set()

def dispatch_detached(
    operation: Callable[[AsyncSession], Awaitable[Any]],
    *,
    session_factory: Optional[Callable[[], AsyncSession]] = None,
    name: Optional[str] = None,
) -> "asyncio.Task[NotificationResult]":
    """
    Run a notification operation without blocking the caller

    The operation receives a fresh session that is committed when it
    finishes and rolled back if it raises. The returned task always
    resolves to a NotificationResult; it is never cancelled by this
    module and exceptions never propagate out of it.

    Args:
        operation: coroutine function taking an AsyncSession
        session_factory: session factory, defaults to AsyncSessionLocal
        name: label used for the task and in logs
    """
    factory = session_factory or AsyncSessionLocal
    label = name or getattr(operation, "__qualname__", repr(operation))

    async def runner() -> NotificationResult:
        try:
            async with factory() as session:
                try:
                    outcome = await operation(session)
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise
        except Exception as e:
            logger.error(f"Detached notification {label} failed: {e}", exc_info=True)
            return NotificationResult.failure(str(e))

        if not isinstance(outcome, NotificationResult):
            return NotificationResult.ok()
        if not outcome.success:
            logger.warning(f"Detached notification {label} reported failure: {outcome.error}")
        return outcome

    task = asyncio.get_running_loop().create_task(runner(), name=label)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task
