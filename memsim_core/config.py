PAGE_SIZE = 4 * 1024  # 4 KB pages
RAM_FRAMES = 16
PROCESSOR_QUANTUM = 2000  # ms
TICK_MS = 500  # simulated CPU time consumed per tick

# Scheduler policy probabilities (per tick)
IO_BLOCK_CHANCE = 0.1
CONTEXT_SWITCH_CHANCE = 0.1
UNBLOCK_CHANCE = 0.6

MAX_EVENT_HISTORY = 100

DEFAULT_CONFIG = {
    'ram_frames': RAM_FRAMES,
    'page_size': PAGE_SIZE,
    'processor_quantum': PROCESSOR_QUANTUM,
    'tick_ms': TICK_MS,
    'max_processes': 10,
    'auto_scheduling': False,
    'tick_interval_ms': 500,  # wall clock between timer driven ticks
    'io_block_chance': IO_BLOCK_CHANCE,
    'context_switch_chance': CONTEXT_SWITCH_CHANCE,
    'unblock_chance': UNBLOCK_CHANCE,
    'max_event_history': MAX_EVENT_HISTORY,
}

_POSITIVE_KEYS = ('ram_frames', 'page_size', 'processor_quantum', 'tick_ms',
                  'max_processes', 'tick_interval_ms', 'max_event_history')
_PROBABILITY_KEYS = ('io_block_chance', 'context_switch_chance', 'unblock_chance')


def build_config(overrides=None):
    """Merges overrides over DEFAULT_CONFIG and validates the result."""
    config = dict(DEFAULT_CONFIG)
    if overrides:
        unknown = set(overrides) - set(DEFAULT_CONFIG)
        if unknown:
            raise ValueError(f"Unknown simulator setting(s): {', '.join(sorted(unknown))}")
        config.update(overrides)

    for key in _POSITIVE_KEYS:
        value = config[key]
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValueError(f"{key} must be a positive integer, got {value!r}")
    for key in _PROBABILITY_KEYS:
        value = config[key]
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0.0 <= value <= 1.0:
            raise ValueError(f"{key} must be between 0 and 1, got {value!r}")
    config['auto_scheduling'] = bool(config['auto_scheduling'])
    return config
