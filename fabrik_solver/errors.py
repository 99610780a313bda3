"""
Exception types
"""


class ConfigurationError(ValueError):
    """
    Raised at setup time when a joint, bone, chain or structure is configured in a way that cannot be solved
    (zero-length axes, non-perpendicular hinge axes, local basebone constraints without a parent connection, ...)
    """
