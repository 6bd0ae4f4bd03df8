"""Exceptions raised across the codec boundary."""


class NavigationError(Exception):
    """Base class for caller-facing codec errors."""


class UnrecognizedFormat(NavigationError):
    """No format descriptor recognized the input."""

    def __init__(self, message: str = "Input is not a recognized navigation file",
                 tried: list[str] = None):
        super().__init__(message)
        self.tried = tried or []


class UnsupportedWrite(NavigationError):
    """The target format cannot be written."""

    def __init__(self, format_name: str):
        super().__init__(f"Format {format_name} does not support writing")
        self.format_name = format_name


class IncompatibleCharacteristic(NavigationError):
    """The route's characteristic cannot be represented by the target format."""

    def __init__(self, format_name: str, characteristics):
        super().__init__(
            f"Format {format_name} cannot represent {characteristics.value} routes"
        )
        self.format_name = format_name
        self.characteristics = characteristics
