"""Code Analytics — Error Types."""


class ConfigurationError(ValueError):
    """Raised before any fetch when a request cannot be honoured.

    Covers missing credentials, unknown sources, malformed dates and
    date ranges wider than a provider allows. The message names the
    violated constraint and is safe to show to the user.
    """
