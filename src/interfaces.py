"""Core interfaces used by the decision components."""

from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterable, List


class IStore(ABC):
    """Async key-value store holding every persisted entity."""

    @abstractmethod
    async def get(self, keys: Iterable[str]) -> Dict[str, object]:
        ...

    @abstractmethod
    async def set(self, items: Dict[str, object]) -> None:
        ...

    @abstractmethod
    def subscribe(self, callback: Callable[[Dict[str, object]], None]) -> None:
        ...

    @abstractmethod
    def unsubscribe(self, callback: Callable[[Dict[str, object]], None]) -> None:
        ...


class IEnforcer(ABC):
    @abstractmethod
    async def replace_all(self, directives: List[object]) -> None:
        """Swap the installed directive set for `directives` in one step."""


class ILogger(ABC):
    @abstractmethod
    def log_access(self, message: str) -> None:
        ...

    @abstractmethod
    def log_error(self, message: str) -> None:
        ...

    @abstractmethod
    def info(self, message: str) -> None:
        ...

    @abstractmethod
    def error(self, message: str) -> None:
        ...


class IStatistics(ABC):
    @abstractmethod
    def increment_evaluations(self) -> None:
        ...

    @abstractmethod
    def increment_blocked(self) -> None:
        ...

    @abstractmethod
    def increment_allowed(self) -> None:
        ...

    @abstractmethod
    def increment_snoozed(self) -> None:
        ...

    @abstractmethod
    def increment_errors(self) -> None:
        ...

    @abstractmethod
    def snapshot(self) -> Dict[str, object]:
        ...
