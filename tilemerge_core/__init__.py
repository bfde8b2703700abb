"""
Tilemerge core Python package.

Pure game logic for the sliding-tile merge puzzle plus the thin collaborators
the session talks to. Modules:
- tile.py, grid.py: Tile, Cell, Grid
- moves.py: Direction, the directional move algorithm and the terminal-state oracle
- state.py: GameSnapshot (undo and persistence unit)
- powerups.py: swap/remove state machine and the pending removal task
- commands.py: the Command union accepted by GameSession.dispatch
- session.py: GameSession
- storage.py, render.py, inputs.py: persistence, renderers, key/swipe mapping
- config.py, cli.py
"""
