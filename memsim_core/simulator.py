import random

from memsim_core.config import build_config
from memsim_core.disk import Disk
from memsim_core.process import TERMINATED, Process
from memsim_core.ram import RAM
from memsim_core.scheduler import Processor


class Simulator:
    """Control surface for a driver (GUI or script): build, admit, run, inspect."""

    def __init__(self, logger=None, rng=None):
        self.logger = logger if logger else print
        self.rng = rng or random.Random()
        self.config = build_config()
        self.ram = None
        self.disk = None
        self.processor = None
        self.processes = []
        self.is_running = False

    def _log(self, message):
        if self.logger:
            self.logger(message)

    @property
    def current_time(self):
        """Ticks completed since initialization."""
        return self.processor.ticks if self.processor else 0

    @property
    def is_initialized(self):
        return self.processor is not None

    def initialize(self, **overrides):
        """Builds a fresh RAM, Disk and Processor from the defaults plus overrides."""
        config = build_config(overrides)
        Process.reset_pid_counter()
        self.config = config
        self.ram = RAM(config['ram_frames'], config['page_size'])
        self.disk = Disk()
        self.processor = Processor(
            config['processor_quantum'], self.ram, self.disk,
            rng=self.rng,
            tick_ms=config['tick_ms'],
            io_block_chance=config['io_block_chance'],
            context_switch_chance=config['context_switch_chance'],
            unblock_chance=config['unblock_chance'],
            max_event_history=config['max_event_history'],
            logger=self.logger,
        )
        self.processes = []
        self.is_running = False
        if config['auto_scheduling']:
            self.start()
        self._log(f"Simulator initialized: {config['ram_frames']} frames of {config['page_size']} bytes, "
                  f"quantum {config['processor_quantum']} ms.")
        return self.processor

    def add_process(self, can_be_blocked=False, memory_size=None):
        """Creates and admits a process. Returns None when not initialized or at max_processes."""
        if not self.is_initialized:
            self._log("Error: simulator is not initialized.")
            return None
        if len(self.processes) >= self.config['max_processes']:
            self._log(f"Error: process limit of {self.config['max_processes']} reached.")
            return None

        process = Process(can_be_blocked=can_be_blocked, memory_size=memory_size, rng=self.rng,
                          logger=self.logger)
        self.processor.admit_process(process)
        self.processes.append(process)
        return process

    def start(self):
        if not self.is_initialized:
            return False
        self.is_running = True
        self.processor.set_auto_scheduling(True)
        return True

    def pause(self):
        if not self.is_initialized:
            return False
        self.is_running = False
        self.processor.set_auto_scheduling(False)
        return True

    def step(self):
        """Runs exactly one tick, whether or not the simulation is running."""
        if not self.is_initialized:
            return False
        return self.processor.schedule()

    def tick(self):
        """Timer entry point: advances only while the simulation is running."""
        if not self.is_running:
            return False
        return self.step()

    def reset(self):
        self.is_running = False
        if self.processor is not None:
            self.processor.reset()
        self.processor = None
        self.ram = None
        self.disk = None
        self.processes = []
        Process.reset_pid_counter()

    def get_metrics(self):
        if not self.is_initialized:
            return {}
        mmu = self.processor.mmu
        terminated = sum(1 for p in self.processes if p.state == TERMINATED)
        occupied_frames = self.ram.num_frames - self.ram.get_free_frames_count()
        return {
            'total_processes': len(self.processes),
            'active_processes': len(self.processes) - terminated,
            'terminated_processes': terminated,
            'page_faults': mmu.page_faults,
            'page_hits': mmu.page_hits,
            'swap_count': mmu.swap_count,
            'hit_ratio': mmu.get_hit_ratio(),
            'ram_usage': occupied_frames / self.ram.num_frames * 100,
            'disk_pages': self.disk.get_total_pages(),
            'cpu_utilization': 100 if self.processor.current_process else 0,
            'throughput': terminated / self.current_time if self.current_time > 0 else 0,
        }
