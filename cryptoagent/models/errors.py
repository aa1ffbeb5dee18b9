"""Error types shared by the core and the service clients.

Every error carries a machine readable ``code`` and a ``message`` that is
safe to show to the user as-is.
"""


class AgentError(Exception):
    def __init__(self, code: str, message: str, **extra):
        self.code = code
        self.message = message
        self.extra = extra
        super().__init__(message)


class InvalidQuery(AgentError):
    """The query could not be turned into an actionable intent."""


class AssemblyError(Exception):
    """Base for failures of the streaming response assembler."""


class TransportFailure(AgentError, AssemblyError):
    """A remote service was unreachable or failed mid-request."""


class FragmentParseFailure(AgentError):
    """A single streamed fragment could not be parsed. Never escapes the assembler."""


class PriceNotFound(AgentError):
    """The price service answered but had no USD price for the asset."""


class WalletError(AgentError):
    """Wallet provider missing, refused, or failed to sign."""
