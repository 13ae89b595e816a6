from dataclasses import dataclass
from enum import Enum


class JobStatus(Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.ERROR)


@dataclass
class Job:
    file_id: str
    transcription_id: str = ""
    status: JobStatus = JobStatus.QUEUED
    polls: int = 0
