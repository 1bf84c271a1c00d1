import random
from collections import deque

from memsim_core.config import (CONTEXT_SWITCH_CHANCE, IO_BLOCK_CHANCE, MAX_EVENT_HISTORY, TICK_MS,
                                UNBLOCK_CHANCE)
from memsim_core.memory_manager import (MMU, InvalidPageNumberError, MemoryBookkeepingError,
                                        MissingPageTableError)
from memsim_core.process import BLOCKED, READY, RUNNING, TERMINATED, VALID_TRANSITIONS, InvalidTransitionError

# Failures of a single simulated memory access. They are logged and the tick goes on.
MEMORY_ACCESS_ERRORS = (MissingPageTableError, MemoryBookkeepingError, InvalidPageNumberError)


class InvalidProcessError(ValueError):
    pass


class CPUOccupiedError(RuntimeError):
    pass


class Processor:
    """Single CPU scheduler driving the MMU one tick at a time."""

    def __init__(self, quantum, ram, disk, rng=None, tick_ms=TICK_MS,
                 io_block_chance=IO_BLOCK_CHANCE, context_switch_chance=CONTEXT_SWITCH_CHANCE,
                 unblock_chance=UNBLOCK_CHANCE, max_event_history=MAX_EVENT_HISTORY, logger=None):
        self.quantum = quantum  # ms
        self.tick_ms = tick_ms
        self.ready_queue = deque()
        self.blocked_queue = []
        self.current_process = None
        self.auto_scheduling = False
        self.time_slice_elapsed = 0
        self.ticks = 0
        self.rng = rng or random.Random()
        self.io_block_chance = io_block_chance
        self.context_switch_chance = context_switch_chance
        self.unblock_chance = unblock_chance
        self.logger = logger if logger else print
        self.mmu = MMU(ram, disk, logger=self.logger, max_event_history=max_event_history)
        self._in_tick = False

    def _log(self, message):
        if self.logger:
            self.logger(message)

    def admit_process(self, process):
        """Initializes the process's memory and queues it as READY."""
        if process is None or getattr(process, 'pid', None) is None:
            raise InvalidProcessError("Invalid process provided for admission")
        if self.mmu.has_page_table(process.pid):
            raise InvalidProcessError(f"PID {process.pid} was already admitted")
        if READY not in VALID_TRANSITIONS[process.state]:
            raise InvalidTransitionError(process.state, READY)
        self.mmu.initialize_process(process)
        process.transition(READY, "Admitted to the system")
        self.ready_queue.append(process)
        self._log(f"Admitted PID {process.pid} ({process.num_pages} pages).")

    def schedule(self):
        """Runs one simulation tick. Returns False if called while a tick is in progress."""
        if self._in_tick:
            self._log("Warning: schedule() called during a tick in progress. Ignored.")
            return False

        self._in_tick = True
        try:
            self._check_blocked_queue()
            if self.current_process is not None:
                self._execute_current()
            if self.current_process is None and self.ready_queue:
                self._dispatch_next()
            self.ticks += 1
        finally:
            self._in_tick = False
        return True

    def _check_blocked_queue(self):
        if not self.blocked_queue:
            return

        to_unblock = [p for p in self.blocked_queue if self.rng.random() < self.unblock_chance]
        for p in to_unblock:
            self.blocked_queue.remove(p)
            p.transition(READY, "I/O completed")
            self.ready_queue.append(p)
            self._log(f"PID {p.pid} unblocked (I/O completed).")

    def _dispatch_next(self):
        process = self.ready_queue.popleft()
        self.current_process = process
        self.time_slice_elapsed = 0
        process.transition(RUNNING, "Assigned to CPU")
        self._simulate_memory_access(process)

    def _execute_current(self):
        p = self.current_process
        p.execute_tick(self.tick_ms)
        self.time_slice_elapsed += self.tick_ms
        self._simulate_memory_access(p)

        if p.remaining_time <= 0:
            p.transition(TERMINATED, "Process completed")
            self.mmu.free_process_memory(p)
            self.current_process = None
            self._log(f"PID {p.pid} terminated.")
            return

        if p.can_be_blocked() and self.rng.random() < self.io_block_chance:
            p.transition(BLOCKED, "I/O operation")
            self.blocked_queue.append(p)
            self.current_process = None
            self._log(f"PID {p.pid} blocked on I/O.")
            return

        quantum_expired = self.quantum is not None and self.time_slice_elapsed >= self.quantum
        if quantum_expired or self.rng.random() < self.context_switch_chance:
            p.transition(READY, "Quantum expired (context switch)")
            self.ready_queue.append(p)
            self.current_process = None

    def _simulate_memory_access(self, process):
        num_pages = len(process.pages)
        if num_pages == 0:
            return
        page_number = self.rng.randrange(num_pages)
        try:
            process.simulate_memory_access(self.mmu, page_number)
        except MEMORY_ACCESS_ERRORS as e:
            self._log(f"Warning: memory access failed for PID {process.pid}: {e}")

    def set_auto_scheduling(self, enabled):
        self.auto_scheduling = enabled
        if enabled and self.current_process is None and self.ready_queue:
            self.schedule()

    def manual_transition(self, process, new_state, reason=""):
        """Administrative state change outside the tick loop."""
        if process is None or not self.mmu.has_page_table(process.pid):
            raise MissingPageTableError(getattr(process, 'pid', None))
        if (new_state == RUNNING and self.current_process is not None
                and self.current_process is not process):
            raise CPUOccupiedError("CPU is already occupied")

        old_state = process.state
        # Validates before any queue is touched; raises InvalidTransitionError
        process.transition(new_state, reason)

        if old_state == READY and process in self.ready_queue:
            self.ready_queue.remove(process)
        elif old_state == BLOCKED and process in self.blocked_queue:
            self.blocked_queue.remove(process)
        elif old_state == RUNNING and self.current_process is process:
            self.current_process = None

        if new_state == READY:
            if process not in self.ready_queue:
                self.ready_queue.append(process)
        elif new_state == BLOCKED:
            if process not in self.blocked_queue:
                self.blocked_queue.append(process)
        elif new_state == RUNNING:
            self.current_process = process
            self.time_slice_elapsed = 0
            if process.pages:
                page_number = self.rng.randrange(len(process.pages))
                try:
                    process.simulate_memory_access(self.mmu, page_number)
                except MEMORY_ACCESS_ERRORS as e:
                    self._log(f"Error: memory access failed for PID {process.pid}: {e}")
                    process.transition(BLOCKED, "Memory access error")
                    self.blocked_queue.append(process)
                    self.current_process = None
        elif new_state == TERMINATED:
            self.mmu.free_process_memory(process)

        if self.auto_scheduling and self.current_process is None:
            self.schedule()

    def get_all_queues_str_list(self):
        running = (f"{self.current_process.name}({self.current_process.remaining_time})"
                   if self.current_process else "Idle")
        return [
            "Ready: " + (" -> ".join(f"{p.name}({p.remaining_time})" for p in self.ready_queue)
                         if self.ready_queue else "Empty"),
            "Blocked: " + (", ".join(f"{p.name}({p.remaining_time})" for p in self.blocked_queue)
                           if self.blocked_queue else "Empty"),
            f"Running: {running}",
        ]

    def reset(self):
        self.ready_queue.clear()
        self.blocked_queue.clear()
        self.current_process = None
        self.auto_scheduling = False
        self.time_slice_elapsed = 0
        self.ticks = 0
        self.mmu.reset()
