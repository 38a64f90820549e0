"""Exception hierarchy shared by the server and the wire client."""


class PongError(RuntimeError):
    """Base class for Pong related failures."""


class ProtocolError(PongError):
    """Raised when a line does not follow the wire grammar."""


class SessionFull(PongError):
    """Raised when both player slots are already claimed."""


class ServerStopping(PongError):
    """Raised when a connection arrives while the server shuts down."""


__all__ = ["PongError", "ProtocolError", "ServerStopping", "SessionFull"]
