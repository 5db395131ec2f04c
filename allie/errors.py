class AllieError(Exception):
    """Base class for every failure raised inside the assistant."""


class PermissionDenied(AllieError):
    """The microphone could not be acquired."""


class NoActiveRecording(AllieError):
    pass


class AlreadyRecording(AllieError):
    pass


class TranscriptionFailed(AllieError):
    """Transcription request failed; terminal for the current turn."""


class DownstreamCallFailed(AllieError):
    """Network or parse failure from weather, sports, schedule or chat."""

    def __init__(self, service: str, reason: str):
        super().__init__(f"{service}: {reason}")
        self.service = service
        self.reason = reason


class InvalidSelection(AllieError):
    """Numeric disambiguation reply outside the offered options."""

    def __init__(self, index: int, count: int):
        super().__init__(f"selection {index + 1} is not between 1 and {count}")
        self.index = index
        self.count = count
