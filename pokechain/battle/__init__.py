"""
Battle engine package.
- stats.py (level-scaled stat formulas)
- models.py (Creature, Move)
- core.py (type chart, move resolution, status engine)
- factory.py (creatures from catalog templates)
- experience.py (EXP, level-up, evolution, move learning)
- session.py (battle state machine)
- render.py (rich renderables)
"""
from .session import BattleSession, BattleState, RecoveryOption, TurnResult
__all__ = ["BattleSession", "BattleState", "RecoveryOption", "TurnResult"]
