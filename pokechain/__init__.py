"""PokéChain Arena - turn-based creature battles with persistent progression.

Packages:
- battle (stats, move resolution, status engine, session state machine, experience)
- game (per-identity context, roster, progression, marketplace)
- data (catalog & ledger collaborators)
- system (settings, snapshots)
"""
__version__ = "0.3.0"
