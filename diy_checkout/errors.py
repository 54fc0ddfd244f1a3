"""
Expected checkout failures.

assemble_checkout converts these into {"ok": False, "error", "kind"};
anything else (e.g. a malformed platform response) propagates.
"""


class CheckoutError(Exception):
    kind = "checkout"


class ConfigurationError(CheckoutError):
    """Operator setup is incomplete — no commerce credential, empty catalog."""
    kind = "configuration"


class InputError(CheckoutError):
    """Nothing to sell — no area or counts, or they resolved to zero items."""
    kind = "input"


class PlatformError(CheckoutError):
    """Commerce platform refused the draft order (after the one variant retry)."""
    kind = "platform"
