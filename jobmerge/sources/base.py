from abc import ABC, abstractmethod

from jobmerge.models import Job


class JobSource(ABC):
    """Producer of raw job records for one site."""

    site: str = "Other"

    @abstractmethod
    def search(self, query: str, limit: int = 20) -> list[Job]:
        pass
