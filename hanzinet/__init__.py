"""
HanziNet: Chinese characters through flashcard networks.

Components:
- verification: Pinyin and definition answer checking
- geometry: Arrow routing and label placement for flashcard networks
- scheduling: SM-2 arrow track, character track and unlock pacing
- study: Session state machine and network study modes
- documents: Flashcard set models, templates, history and progress files
- store: SQLite persistence for characters, progress and practice logs
- cli: Typer terminal interface
"""

__version__ = "0.3.0"
