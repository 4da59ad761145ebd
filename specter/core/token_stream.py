"""Token stream aggregation for generation sessions.

A session moves PENDING -> STREAMING -> COMPLETE -> SPLIT, or to FAILED from
PENDING/STREAMING. Fragments are appended verbatim in arrival order and a
snapshot of the accumulated text is emitted after every fragment. Nothing is
trimmed, merged or reordered, because heading search downstream depends on
the exact byte order of the text.
"""

from collections.abc import AsyncIterable, AsyncIterator, Callable
from dataclasses import dataclass
from enum import Enum

from specter.core.cancellation import CancellationToken
from specter.core.exceptions import GenerationError, OperationCancelled
from specter.core.logging import get_logger
from specter.core.schemas_draft import DraftSection, HeadingSpec
from specter.core.section_splitter import split_sections

logger = get_logger(__name__)


class GenerationState(str, Enum):
    PENDING = "pending"
    STREAMING = "streaming"
    COMPLETE = "complete"
    SPLIT = "split"
    FAILED = "failed"


@dataclass(frozen=True)
class StreamSnapshot:
    """Accumulated text after one fragment, or the final completion event."""

    text: str
    fragment: str
    index: int
    is_complete: bool = False


SnapshotObserver = Callable[[StreamSnapshot], None]


class GenerationSession:
    """Transient state of a single generation call."""

    def __init__(self) -> None:
        self.accumulated_text = ""
        self.state = GenerationState.PENDING
        self.fragment_count = 0
        self.error: str | None = None

    @property
    def is_complete(self) -> bool:
        return self.state in (GenerationState.COMPLETE, GenerationState.SPLIT)

    def append(self, fragment: str) -> None:
        if self.state not in (GenerationState.PENDING, GenerationState.STREAMING):
            raise RuntimeError(f"Cannot append to a {self.state.value} session")
        self.state = GenerationState.STREAMING
        self.accumulated_text += fragment
        self.fragment_count += 1

    def complete(self) -> None:
        if self.state not in (GenerationState.PENDING, GenerationState.STREAMING):
            raise RuntimeError(f"Cannot complete a {self.state.value} session")
        self.state = GenerationState.COMPLETE

    def fail(self, message: str) -> None:
        self.state = GenerationState.FAILED
        self.error = message

    def split(self, headings: list[HeadingSpec]) -> list[DraftSection]:
        """Partition the completed text into sections. Terminal."""
        if self.state != GenerationState.COMPLETE:
            raise RuntimeError(f"Cannot split a {self.state.value} session")
        sections = split_sections(self.accumulated_text, headings)
        self.state = GenerationState.SPLIT
        return sections


class TokenStreamAggregator:
    """Consumes text fragments from a generation stream into a session."""

    async def snapshots(
        self,
        stream: AsyncIterable[str],
        session: GenerationSession | None = None,
        cancel: CancellationToken | None = None,
    ) -> AsyncIterator[StreamSnapshot]:
        """
        Yield a snapshot after every fragment, then one completion snapshot.

        Raises:
            GenerationError: If the stream raises; carries the partial text
            OperationCancelled: If the token is tripped between fragments
        """
        session = session or GenerationSession()
        iterator = aiter(stream)

        while True:
            if cancel and cancel.cancelled:
                session.fail("cancelled")
                raise OperationCancelled(cancel.reason or "Generation cancelled")

            try:
                fragment = await anext(iterator)
            except StopAsyncIteration:
                break
            except OperationCancelled:
                session.fail("cancelled")
                raise
            except Exception as e:
                message = e.message if isinstance(e, GenerationError) else str(e)
                session.fail(message)
                logger.warning(
                    f"Generation stream failed after {session.fragment_count} fragments: {message}"
                )
                raise GenerationError(
                    message or "Generation stream failed",
                    partial_text=session.accumulated_text,
                ) from e

            session.append(fragment)
            yield StreamSnapshot(
                text=session.accumulated_text,
                fragment=fragment,
                index=session.fragment_count - 1,
            )

        session.complete()
        logger.debug(
            f"Generation stream complete: {session.fragment_count} fragments, "
            f"{len(session.accumulated_text)} chars"
        )
        yield StreamSnapshot(
            text=session.accumulated_text,
            fragment="",
            index=session.fragment_count,
            is_complete=True,
        )

    async def consume(
        self,
        stream: AsyncIterable[str],
        observer: SnapshotObserver | None = None,
        cancel: CancellationToken | None = None,
    ) -> GenerationSession:
        """
        Drain a stream into a new session, notifying the observer per snapshot.

        Returns:
            The completed session
        """
        session = GenerationSession()
        async for snapshot in self.snapshots(stream, session=session, cancel=cancel):
            if observer is not None:
                observer(snapshot)
        return session
