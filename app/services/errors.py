from typing import Dict, List


class TopicValidationError(Exception):
    """A topic or reply write was refused; ``errors`` maps field -> messages.

    ``base`` holds errors about the write as a whole (creation throttling).
    """

    def __init__(self, errors: Dict[str, List[str]]):
        self.errors = errors
        super().__init__("; ".join(self.messages))

    @property
    def messages(self) -> List[str]:
        return [m for msgs in self.errors.values() for m in msgs]

    @property
    def count(self) -> int:
        return len(self.messages)


class TopicLockedError(Exception):
    """Replies are not accepted on banned or closed topics."""
