"""Typed failures raised by the stamping pipeline and session lifecycle."""

from uuid import UUID


class InspectionCameraError(Exception):
    """Base class for inspection camera errors."""


class InvalidDimensions(InspectionCameraError):
    """Source frame has a zero width or height (camera not ready yet)."""

    def __init__(self, width: int, height: int) -> None:
        super().__init__(f"Source frame has invalid dimensions {width}x{height}")
        self.width = width
        self.height = height


class EncodingFailed(InspectionCameraError):
    """The rendering surface could not be encoded, even with the fallback."""


class IncompleteIdentification(InspectionCameraError):
    """Asset id and client name are both required."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"Missing identification fields: {', '.join(missing)}")
        self.missing = missing


class InvalidTransition(InspectionCameraError):
    """Operation is not allowed in the current session state."""

    def __init__(self, operation: str, state: str) -> None:
        super().__init__(f"Cannot {operation} while session is {state}")
        self.operation = operation
        self.state = state


class FinalizationAborted(InspectionCameraError):
    """Re-stamping failed partway through finalization; nothing was archived."""

    def __init__(self, completed: int, total: int) -> None:
        super().__init__(
            f"Finalization aborted after re-stamping {completed} of {total} artifacts"
        )
        self.completed = completed
        self.total = total


class InvalidImage(InspectionCameraError):
    """Frame bytes are not a complete, decodable image."""


class ExportFailed(InspectionCameraError):
    """The export sink rejected an artifact of an already archived batch."""

    def __init__(self, batch_id: UUID, exported: list[str]) -> None:
        super().__init__(
            f"Export of batch {batch_id} stopped after {len(exported)} files"
        )
        self.batch_id = batch_id
        self.exported = exported
