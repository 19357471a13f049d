"""Error kinds raised by the IVR."""


class IVRError(Exception):
    """Base class for IVR errors."""


class ConfigurationError(IVRError):
    """Required configuration is missing or unusable."""


class MalformedWebhookError(IVRError):
    """A webhook arrived without a transport field it must carry."""

    def __init__(self, field: str, endpoint: str = ""):
        self.field = field
        self.endpoint = endpoint
        where = f" on {endpoint}" if endpoint else ""
        super().__init__(f"Missing required webhook field '{field}'{where}")


class UnknownCallError(IVRError):
    """A step that needs prior state arrived for a call with no session."""

    def __init__(self, call_sid: str):
        self.call_sid = call_sid
        super().__init__(f"No session for call {call_sid}")
