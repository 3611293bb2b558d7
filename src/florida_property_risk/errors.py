class RemoteError(RuntimeError):
    """A feature-query call failed after all attempts."""

    kind = "transport"

    def __init__(self, message: str, label: str = "ArcGIS") -> None:
        super().__init__(message)
        self.label = label


class UpstreamDataError(RemoteError):
    """The service answered 200 with an embedded error payload."""

    kind = "upstream"


class InvalidInputError(ValueError):
    pass


class RegistryError(ValueError):
    pass
