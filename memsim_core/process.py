import itertools
import random
import time

from memsim_core.events import EventChannel
from memsim_core.memory_manager import Fault, InvalidPageNumberError

NEW = 'NEW'
READY = 'READY'
RUNNING = 'RUNNING'
BLOCKED = 'BLOCKED'
TERMINATED = 'TERMINATED'

STATES = (NEW, READY, RUNNING, BLOCKED, TERMINATED)

VALID_TRANSITIONS = {
    NEW: (READY,),
    READY: (RUNNING,),
    RUNNING: (READY, BLOCKED, TERMINATED),
    BLOCKED: (READY,),
    TERMINATED: (),
}

PROCESS_COLORS = [
    "#3b82f6", "#10b981", "#f59e0b", "#8b5cf6", "#ec4899",
    "#14b8a6", "#f97316", "#6366f1", "#84cc16", "#06b6d4",
]

__all__ = ['Process', 'InvalidTransitionError', 'InvalidPageNumberError', 'STATES', 'VALID_TRANSITIONS',
           'NEW', 'READY', 'RUNNING', 'BLOCKED', 'TERMINATED']


class InvalidTransitionError(ValueError):
    def __init__(self, from_state, to_state):
        super().__init__(f"Invalid transition: {from_state} -> {to_state}")
        self.from_state = from_state
        self.to_state = to_state


class Process:
    _pid_counter = itertools.count(1)

    def __init__(self, can_be_blocked=False, memory_size=None, pid=None, name=None, priority=None,
                 remaining_time=None, rng=None, time_source=time.time, logger=None):
        rng = rng or random
        self.pid = pid if pid is not None else next(Process._pid_counter)
        self.name = name or f"P{self.pid}"
        self.state = NEW
        self.priority = priority if priority is not None else rng.randint(1, 10)
        self.pc = rng.randrange(1000)  # program counter
        self.registers = {'AX': rng.randrange(255), 'BX': rng.randrange(255), 'CX': rng.randrange(255)}
        self.system_calls = []
        self.can_be_blocked_flag = can_be_blocked
        self.remaining_time = remaining_time if remaining_time is not None else rng.randrange(4000, 10000)  # ms
        self.memory_size = memory_size if memory_size is not None else rng.randrange(4096, 36864)  # bytes
        self.pages = []  # filled by the MMU on admission
        self.color = PROCESS_COLORS[self.pid % len(PROCESS_COLORS)]
        self.time_source = time_source

        now = self.time_source()
        self.state_history = [{'state': NEW, 'timestamp': now, 'reason': "Process created",
                               'time_in_previous_state': None}]
        self.state_start_time = now
        self.on_transition = EventChannel(f"PID {self.pid} transition", logger=logger)

    @staticmethod
    def reset_pid_counter():
        """Resets the class-level PID counter to start from 1 again."""
        Process._pid_counter = itertools.count(1)

    @property
    def num_pages(self):
        return len(self.pages)

    def transition(self, new_state, reason=""):
        """Moves to new_state if the transition table allows it.

        Raises InvalidTransitionError (state untouched) otherwise.
        """
        reason = reason or "Automatic change"
        current_state = self.state
        if new_state not in VALID_TRANSITIONS.get(current_state, ()):
            raise InvalidTransitionError(current_state, new_state)

        now = self.time_source()
        time_in_previous_state = now - self.state_start_time

        self.state = new_state
        self.state_start_time = now
        self.state_history.append({
            'state': new_state,
            'timestamp': now,
            'reason': reason,
            'time_in_previous_state': time_in_previous_state,
        })

        if new_state == RUNNING:
            self.system_calls.append(f"exec() - {time.strftime('%H:%M:%S', time.localtime(now))}")
        elif new_state == BLOCKED:
            self.system_calls.append(f"I/O wait - {time.strftime('%H:%M:%S', time.localtime(now))}")

        self.on_transition.publish({
            'pid': self.pid,
            'from': current_state,
            'to': new_state,
            'reason': reason,
            'timestamp': now,
            'time_in_state': time_in_previous_state,
        })

    def can_be_blocked(self):
        return self.can_be_blocked_flag

    def get_time_in_current_state(self):
        return self.time_source() - self.state_start_time

    def get_recent_history(self, k):
        return self.state_history[-k:] if k > 0 else []

    def get_stats(self):
        """Total time spent and number of visits per state."""
        stats = {state: {'total_time': 0, 'count': 0} for state in STATES}
        for index, entry in enumerate(self.state_history):
            stats[entry['state']]['count'] += 1
            if index > 0 and entry['time_in_previous_state']:
                previous_state = self.state_history[index - 1]['state']
                stats[previous_state]['total_time'] += entry['time_in_previous_state']
        return stats

    def execute_tick(self, tick_ms):
        """Consumes one tick of CPU time."""
        self.remaining_time -= tick_ms
        self.pc += 1

    def simulate_memory_access(self, mmu, page_number):
        """Accesses one of this process's pages, completing the swap-in on a fault."""
        if not 0 <= page_number < len(self.pages):
            raise InvalidPageNumberError(self.pid, page_number)

        result = mmu.access_memory(self, page_number)
        if isinstance(result, Fault):
            return mmu.handle_page_fault(self, page_number)
        return result.frame_index

    def get_memory_location_summary(self, mmu):
        return mmu.get_memory_location_summary(self.pid)

    def __repr__(self):
        return f"Process(pid={self.pid}, state={self.state}, remaining={self.remaining_time})"
