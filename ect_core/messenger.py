"""
User-facing message sink.

Collects status/warning/error messages during a request so the caller can
show them next to its response. Separate from logging: helpers that report a
failure usually write to both.
"""

TYPE_STATUS = "status"
TYPE_WARNING = "warning"
TYPE_ERROR = "error"


class Messenger:
    def __init__(self):
        self._messages: dict[str, list[str]] = {}

    def add_message(self, message: str, message_type: str = TYPE_STATUS, repeat: bool = False) -> "Messenger":
        bucket = self._messages.setdefault(message_type, [])
        if repeat or message not in bucket:
            bucket.append(str(message))
        return self

    def add_status(self, message: str, repeat: bool = False) -> "Messenger":
        return self.add_message(message, TYPE_STATUS, repeat)

    def add_warning(self, message: str, repeat: bool = False) -> "Messenger":
        return self.add_message(message, TYPE_WARNING, repeat)

    def add_error(self, message: str, repeat: bool = False) -> "Messenger":
        return self.add_message(message, TYPE_ERROR, repeat)

    def all(self) -> dict[str, list[str]]:
        return {k: list(v) for k, v in self._messages.items() if v}

    def messages_by_type(self, message_type: str) -> list[str]:
        return list(self._messages.get(message_type, []))

    def delete_all(self) -> dict[str, list[str]]:
        messages = self.all()
        self._messages = {}
        return messages

    def delete_by_type(self, message_type: str) -> list[str]:
        return self._messages.pop(message_type, [])
