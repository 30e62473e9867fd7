"""Server-wide configuration constants for the Gridfight combat server."""

import os

METERS_PER_TILE = 1.5      # Each grid square = 1.5 metres
DEFAULT_MOVE_TILES = 6     # Movement budget when a speed can't be parsed (9m)
PLAYER_START = (2, 4)      # Player spawn square (x, y)
ENEMY_START_X = 9          # Enemies spawn in a column at this x ...
ENEMY_START_Y = 3          # ... starting at this y, one row per enemy
BANISH_SENTINEL = (-999, -999)  # Off-map square for banished combatants

DEFAULT_PLAYER_HP = 20
DEFAULT_PLAYER_AC = 12
DEFAULT_ENEMY_HP = 10
DEFAULT_ENEMY_AC = 10
DEFAULT_ENEMY_SPEED = "9m"
DEFAULT_ENEMY_ATTACK_BONUS = 4
DEFAULT_ENEMY_SAVE_DC = 12
DEFAULT_WEAPON_ATTACK_BONUS = 5
DEFAULT_DAMAGE_DICE = "1d4"
MAX_DICE_COUNT = 100           # Dice rolled per expression at most
DEFAULT_PUSH_DISTANCE_M = 3.0
DEFAULT_BANISH_ROUNDS = 10

# AI pacing, in scheduler ticks (one tick ~ 100ms of UI feedback)
AI_THINK_TICKS = 8
AI_MOVE_PAUSE_TICKS = 6
AI_END_TICKS = 8
DEAD_SKIP_TICKS = 5
MAX_DRAIN_TICKS = 10_000

DATA_DIR = os.environ.get("DATA_DIR", ".")  # Persistent data directory
SAVE_FILE = os.path.join(DATA_DIR, "combat_session.json")
CONTENT_DIR = os.environ.get(
    "CONTENT_DIR",
    os.path.join(os.path.dirname(os.path.abspath(__file__)), "data"),
)
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
