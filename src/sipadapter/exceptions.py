"""Exception hierarchy for sipadapter."""


class SipAdapterError(Exception):
    """Base exception for all adapter errors."""
    pass


class ConfigurationError(SipAdapterError, ValueError):
    """The adapter configuration is missing a field or could not be loaded."""
    pass


class TargetUriError(SipAdapterError, ValueError):
    """A message target could not be parsed as a SIP URI."""

    def __init__(self, target: str):
        self.target = target
        super().__init__(f"Target URI could not be parsed: {target}")


class RegistrationError(SipAdapterError):
    """Registration failed while starting the adapter in strict mode."""

    def __init__(self, event=None):
        self.sip_stack_object = event
        cause = getattr(event, 'cause', None)
        super().__init__(f"Registration failed: {cause}" if cause else "Registration failed")
