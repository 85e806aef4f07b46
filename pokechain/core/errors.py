"""
Error classes for clearer exception sources.

InvalidAction subclasses are user input errors: raised before any state is
touched so callers can show the message and let the player choose again.
"""
from __future__ import annotations

class ArenaError(Exception):
    pass

class DataLoadError(ArenaError):
    def __init__(self, path: str, detail: str):
        super().__init__(f"Failed to load {path}: {detail}")
        self.path = path
        self.detail = detail

class ValidationError(ArenaError):
    pass

class InvariantViolation(ArenaError):
    pass

# --- user input -----------------------------------------------------------

class InvalidAction(ArenaError):
    pass

class NoActiveCreature(InvalidAction):
    pass

class InvalidOpponentCount(InvalidAction):
    pass

class InsufficientFunds(InvalidAction):
    def __init__(self, needed: int, available: int):
        super().__init__(f"Not enough coins: need {needed}, have {available}")
        self.needed = needed
        self.available = available

class ItemUnavailable(InvalidAction):
    pass

class AlreadyActive(InvalidAction):
    pass

class CreatureFainted(InvalidAction):
    pass

class InvalidTarget(InvalidAction):
    pass

class TargetFullHP(InvalidAction):
    pass

class MoveOutOfPP(InvalidAction):
    pass

class CaptureNotAllowed(InvalidAction):
    pass

class BattleNotReady(InvalidAction):
    pass

class ProfileExists(InvalidAction):
    pass

class ProfileNotFound(InvalidAction):
    pass

# --- collaborators --------------------------------------------------------

class CatalogError(ArenaError):
    pass

class CatalogNotFound(CatalogError):
    def __init__(self, ref: str):
        super().__init__(f"Catalog entry not found: {ref}")
        self.ref = ref

class CatalogUnavailable(CatalogError):
    pass

class MoveUnavailable(CatalogError):
    def __init__(self, ref: str, detail: str = "unavailable"):
        super().__init__(f"Move '{ref}' {detail}")
        self.ref = ref

class LedgerError(ArenaError):
    def __init__(self, action: str, detail: str):
        super().__init__(f"Ledger '{action}' failed: {detail}")
        self.action = action
        self.detail = detail
