from dataclasses import dataclass


@dataclass(frozen=True)
class TranscriptEvent:
    pass


@dataclass(frozen=True)
class Delta(TranscriptEvent):
    text: str = ""


@dataclass(frozen=True)
class Final(TranscriptEvent):
    text: str | None = None


@dataclass(frozen=True)
class Finished(TranscriptEvent):
    text: str = ""


@dataclass(frozen=True)
class StreamError(TranscriptEvent):
    code: str = ""
    message: str = ""


@dataclass(frozen=True)
class Other(TranscriptEvent):
    type: str = ""


class TranscriptAccumulator:
    def __init__(self) -> None:
        self._deltas: list[str] = []
        self._final: str | None = None

    @property
    def has_final(self) -> bool:
        return self._final is not None

    def add(self, event: TranscriptEvent) -> bool:
        """Record an event and return True once the stream has reached a terminal event."""
        if isinstance(event, Final):
            if isinstance(event.text, str):
                self._final = event.text
            return True
        if isinstance(event, Finished):
            self._deltas.append(event.text)
            return True
        if isinstance(event, Delta):
            self._deltas.append(event.text)
        return False

    def result(self) -> str:
        text = self._final if self._final is not None else "".join(self._deltas)
        return text.strip()
