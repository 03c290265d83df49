class HardlineError(Exception):
    """Base error for Hardline Prophet domain exceptions."""


class ProfileError(HardlineError):
    """Raised when a starting class or perk selection is invalid."""


class InsufficientCreditsError(HardlineError):
    """Raised when a player cannot afford a purchase."""


class UnknownItemError(HardlineError):
    """Raised when a requested item id is not in the item catalog."""


class CatalogError(HardlineError):
    """Raised when a content catalog file cannot be parsed or validated."""
