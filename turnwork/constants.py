MIN_CYCLE_LENGTH = 1
MAX_CYCLE_LENGTH = 30

DEFAULT_SHIFT_START = "08:00"
DEFAULT_SHIFT_END = "16:00"

MINUTES_PER_DAY = 24 * 60

SNOOZE_MINUTES = 5

DEFAULT_SHIFT_COLORS = [
    0x4A90D9,
    0x7B61FF,
    0x34C759,
    0xFF9500,
    0xFF3B30,
    0x8E8E93,
]
