import random
import unittest
from unittest.mock import Mock
from memsim_core.disk import Disk
from memsim_core.memory_manager import ON_DISK, MissingPageTableError
from memsim_core.process import BLOCKED, NEW, READY, RUNNING, TERMINATED, InvalidTransitionError, Process
from memsim_core.ram import RAM
from memsim_core.scheduler import CPUOccupiedError, InvalidProcessError, Processor


class FixedRandom:
    """Random source with pinned outcomes."""

    def __init__(self, value=0.99, page=0):
        self.value = value
        self.page = page

    def random(self):
        return self.value

    def randrange(self, *args):
        if len(args) == 1:
            return min(self.page, args[0] - 1)
        return args[0]

    def randint(self, a, b):
        return a


class TestProcessor(unittest.TestCase):

    def setUp(self):
        """Set up test fixtures before each test method."""
        Process.reset_pid_counter()
        self.logger = Mock()
        self.rng = FixedRandom()
        self.ram = RAM(num_frames=4, page_size=4096)
        self.disk = Disk()
        self.processor = Processor(100000, self.ram, self.disk, rng=self.rng, tick_ms=500, logger=self.logger)

    def create_test_process(self, remaining_time=5000, memory_size=8192, can_be_blocked=False):
        """Helper method to create and admit a test process"""
        process = Process(can_be_blocked=can_be_blocked, memory_size=memory_size,
                          remaining_time=remaining_time, rng=self.rng)
        self.processor.admit_process(process)
        return process

    def assert_released(self, process):
        self.assertEqual(self.ram.get_process_frame_count(process.pid), 0)
        self.assertFalse(self.disk.has_pages(process.pid))
        self.assertFalse(self.processor.mmu.has_page_table(process.pid))
        self.assertNotIn(process, self.processor.ready_queue)
        self.assertNotIn(process, self.processor.blocked_queue)
        self.assertIsNot(self.processor.current_process, process)

    def test_processor_initialization(self):
        """Test Processor initialization"""
        self.assertEqual(self.processor.quantum, 100000)
        self.assertEqual(len(self.processor.ready_queue), 0)
        self.assertEqual(self.processor.blocked_queue, [])
        self.assertIsNone(self.processor.current_process)
        self.assertFalse(self.processor.auto_scheduling)
        self.assertIs(self.processor.mmu.ram, self.ram)
        self.assertIs(self.processor.mmu.disk, self.disk)

    def test_admit_process(self):
        """Test admission initializes memory and queues the process"""
        process = self.create_test_process(memory_size=10000)

        self.assertEqual(process.state, READY)
        self.assertEqual(list(self.processor.ready_queue), [process])
        self.assertEqual(len(process.pages), 3)
        self.assertEqual(set(self.processor.mmu.get_page_table(process.pid).values()), {ON_DISK})

    def test_admit_invalid_process(self):
        """Test admission of a process without identity or twice"""
        with self.assertRaises(InvalidProcessError):
            self.processor.admit_process(None)

        process = self.create_test_process()
        with self.assertRaises(InvalidProcessError):
            self.processor.admit_process(process)
        self.assertEqual(len(self.processor.ready_queue), 1)

    def test_admit_rejects_process_past_new(self):
        """Test that a rejected admission leaves no memory behind"""
        process = self.create_test_process(remaining_time=500)
        self.processor.schedule()
        self.processor.schedule()
        self.assertEqual(process.state, TERMINATED)

        with self.assertRaises(InvalidTransitionError):
            self.processor.admit_process(process)

        self.assert_released(process)
        self.assertEqual(len(self.processor.ready_queue), 0)

        stray = Process(memory_size=8192, remaining_time=1000, rng=self.rng)
        stray.transition(READY)
        with self.assertRaises(InvalidTransitionError):
            self.processor.admit_process(stray)
        self.assertFalse(self.processor.mmu.has_page_table(stray.pid))
        self.assertEqual(stray.pages, [])
        self.assertEqual(stray.state, READY)

    def test_dispatch_performs_initial_access(self):
        """Test the first tick dispatches and faults the first page in"""
        process = self.create_test_process()

        self.assertTrue(self.processor.schedule())

        self.assertIs(self.processor.current_process, process)
        self.assertEqual(process.state, RUNNING)
        self.assertEqual(process.remaining_time, 5000)
        self.assertEqual(self.processor.mmu.page_faults, 1)
        self.assertEqual(self.ram.get_process_frame_count(process.pid), 1)
        self.assertEqual(self.processor.ticks, 1)

    def test_execution_tick(self):
        """Test the running process consumes a tick and accesses memory"""
        process = self.create_test_process()
        self.processor.schedule()
        self.processor.schedule()

        self.assertIs(self.processor.current_process, process)
        self.assertEqual(process.remaining_time, 4500)
        self.assertEqual(self.processor.mmu.page_hits, 1)
        self.assertEqual(self.processor.time_slice_elapsed, 500)

    def test_fifo_dispatch_order(self):
        """Test the ready queue is served first in, first out"""
        first = self.create_test_process(remaining_time=500)
        second = self.create_test_process()
        third = self.create_test_process()

        self.processor.schedule()
        self.assertIs(self.processor.current_process, first)
        self.processor.schedule()
        self.assertIs(self.processor.current_process, second)
        self.assertEqual(list(self.processor.ready_queue), [third])

    def test_termination_releases_resources(self):
        """Test a process with one tick left terminates and frees memory"""
        process = self.create_test_process()
        waiting = self.create_test_process()
        self.processor.schedule()
        process.remaining_time = 500

        self.processor.schedule()

        self.assertEqual(process.state, TERMINATED)
        self.assert_released(process)
        self.assertIs(self.processor.current_process, waiting)
        self.assertEqual(waiting.state, RUNNING)

    def test_io_block_and_unblock(self):
        """Test blocking on I/O and probabilistic completion"""
        process = self.create_test_process(can_be_blocked=True)
        self.processor.schedule()

        self.rng.value = 0.0
        self.processor.schedule()
        self.assertEqual(process.state, BLOCKED)
        self.assertEqual(self.processor.blocked_queue, [process])
        self.assertIsNone(self.processor.current_process)

        self.rng.value = 0.99
        self.processor.schedule()
        self.assertEqual(process.state, BLOCKED)

        self.rng.value = 0.5
        self.processor.schedule()
        self.assertEqual(self.processor.blocked_queue, [])
        self.assertIs(self.processor.current_process, process)
        self.assertEqual(process.state, RUNNING)

    def test_process_that_cannot_block_is_context_switched(self):
        """Test the I/O draw is skipped for processes without the capability"""
        process = self.create_test_process(can_be_blocked=False)
        other = self.create_test_process()
        self.processor.schedule()

        self.rng.value = 0.0
        self.processor.schedule()

        self.assertEqual(process.state, READY)
        self.assertEqual(list(self.processor.ready_queue), [process])
        self.assertIs(self.processor.current_process, other)

    def test_quantum_expiry(self):
        """Test preemption once the time slice reaches the quantum"""
        self.processor.quantum = 1000
        first = self.create_test_process()
        second = self.create_test_process()

        self.processor.schedule()
        self.processor.schedule()
        self.assertIs(self.processor.current_process, first)

        self.processor.schedule()
        self.assertEqual(first.state, READY)
        self.assertIs(self.processor.current_process, second)
        self.assertEqual(list(self.processor.ready_queue), [first])
        self.assertEqual(self.processor.time_slice_elapsed, 0)

    def test_idle_tick(self):
        """Test a tick with nothing to run"""
        self.assertTrue(self.processor.schedule())
        self.assertIsNone(self.processor.current_process)

    def test_reentrant_schedule_is_refused(self):
        """Test that a tick cannot start inside another tick"""
        self.create_test_process()
        results = []
        self.processor.mmu.on_event.subscribe(lambda event: results.append(self.processor.schedule()))

        self.processor.schedule()

        self.assertTrue(results)
        self.assertTrue(all(result is False for result in results))
        self.assertEqual(self.processor.ticks, 1)

    def test_memory_error_does_not_stop_tick(self):
        """Test that a failed access is logged and the tick continues"""
        process = self.create_test_process()
        self.disk.clear_pages(process.pid)

        self.assertTrue(self.processor.schedule())

        self.assertIs(self.processor.current_process, process)
        self.assertTrue(any("memory access failed" in call[0][0] for call in self.logger.call_args_list))

    def test_set_auto_scheduling(self):
        """Test enabling auto scheduling triggers a pass when idle"""
        process = self.create_test_process()

        self.processor.set_auto_scheduling(True)

        self.assertTrue(self.processor.auto_scheduling)
        self.assertIs(self.processor.current_process, process)

        self.processor.set_auto_scheduling(False)
        self.assertFalse(self.processor.auto_scheduling)

    def test_manual_transition_requires_page_table(self):
        """Test manual transition of an unknown process"""
        stranger = Process(memory_size=4096)
        with self.assertRaises(MissingPageTableError):
            self.processor.manual_transition(stranger, READY, "manual")
        self.assertEqual(stranger.state, NEW)

    def test_manual_transition_to_running(self):
        """Test manual dispatch of a ready process"""
        first = self.create_test_process()
        second = self.create_test_process()

        self.processor.manual_transition(second, RUNNING, "manual")

        self.assertIs(self.processor.current_process, second)
        self.assertEqual(list(self.processor.ready_queue), [first])
        self.assertEqual(self.processor.mmu.page_faults, 1)

    def test_manual_transition_cpu_occupied(self):
        """Test manual RUNNING while another process holds the CPU"""
        first = self.create_test_process()
        second = self.create_test_process()
        self.processor.schedule()

        with self.assertRaises(CPUOccupiedError):
            self.processor.manual_transition(second, RUNNING, "manual")

        self.assertEqual(second.state, READY)
        self.assertEqual(list(self.processor.ready_queue), [second])
        self.assertIs(self.processor.current_process, first)

    def test_manual_invalid_transition(self):
        """Test that an invalid manual transition leaves queues untouched"""
        process = self.create_test_process()

        with self.assertRaises(InvalidTransitionError):
            self.processor.manual_transition(process, BLOCKED, "manual")

        self.assertEqual(process.state, READY)
        self.assertEqual(list(self.processor.ready_queue), [process])

    def test_manual_block_and_terminate(self):
        """Test manual BLOCKED, READY and TERMINATED transitions"""
        process = self.create_test_process()
        self.processor.schedule()

        self.processor.manual_transition(process, BLOCKED, "manual")
        self.assertEqual(self.processor.blocked_queue, [process])
        self.assertIsNone(self.processor.current_process)

        self.processor.manual_transition(process, READY, "manual")
        self.assertEqual(self.processor.blocked_queue, [])
        self.assertEqual(list(self.processor.ready_queue), [process])

        self.processor.manual_transition(process, RUNNING, "manual")
        self.processor.manual_transition(process, TERMINATED, "manual")
        self.assertEqual(process.state, TERMINATED)
        self.assert_released(process)

    def test_manual_running_with_memory_error_blocks(self):
        """Test a failed access on manual dispatch degrades to BLOCKED"""
        process = self.create_test_process()
        self.disk.clear_pages(process.pid)

        self.processor.manual_transition(process, RUNNING, "manual")

        self.assertEqual(process.state, BLOCKED)
        self.assertEqual(self.processor.blocked_queue, [process])
        self.assertIsNone(self.processor.current_process)

    def test_manual_transition_with_auto_scheduling(self):
        """Test that auto scheduling refills an idle CPU after a manual change"""
        first = self.create_test_process()
        second = self.create_test_process()
        self.processor.set_auto_scheduling(True)

        self.processor.manual_transition(first, BLOCKED, "manual")

        self.assertIs(self.processor.current_process, second)

    def test_queue_strings(self):
        """Test queue string representation"""
        self.assertEqual(self.processor.get_all_queues_str_list(),
                         ["Ready: Empty", "Blocked: Empty", "Running: Idle"])

        self.create_test_process(remaining_time=3000)
        self.create_test_process(remaining_time=2000)
        self.processor.schedule()

        queue_strings = self.processor.get_all_queues_str_list()
        self.assertEqual(queue_strings[0], "Ready: P2(2000)")
        self.assertEqual(queue_strings[2], "Running: P1(3000)")

    def test_reset(self):
        """Test clearing queues and memory"""
        self.create_test_process()
        self.create_test_process()
        self.processor.schedule()

        self.processor.reset()

        self.assertIsNone(self.processor.current_process)
        self.assertEqual(len(self.processor.ready_queue), 0)
        self.assertEqual(self.processor.ticks, 0)
        self.assertEqual(self.ram.get_free_frames_count(), 4)
        self.assertEqual(self.processor.mmu.page_faults, 0)


class TestSchedulingInvariants(unittest.TestCase):

    def setUp(self):
        Process.reset_pid_counter()

    def test_random_run_keeps_memory_consistent(self):
        """Test resident XOR on disk over a long randomized run"""
        rng = random.Random(1234)
        ram = RAM(num_frames=4, page_size=4096)
        disk = Disk()
        processor = Processor(2000, ram, disk, rng=rng, io_block_chance=0.3, logger=Mock())
        processes = []
        for i in range(6):
            process = Process(can_be_blocked=(i % 2 == 0), rng=rng)
            processor.admit_process(process)
            processes.append(process)

        for _ in range(400):
            processor.schedule()
            if processor.current_process is None:
                self.assertEqual(len(processor.ready_queue), 0)
            for process in processes:
                if process.state == TERMINATED:
                    self.assertEqual(ram.get_process_frame_count(process.pid), 0)
                    self.assertFalse(disk.has_pages(process.pid))
                    continue
                resident = {frame['page'].page_number for frame in ram.frames
                            if frame is not None and frame['pid'] == process.pid}
                on_disk = set(disk.get_process_pages(process.pid))
                self.assertEqual(resident & on_disk, set())
                self.assertEqual(resident | on_disk, set(range(len(process.pages))))
                page_table = processor.mmu.get_page_table(process.pid)
                self.assertEqual(len(page_table), len(process.pages))

        self.assertTrue(all(process.state == TERMINATED for process in processes))
        self.assertGreater(processor.mmu.swap_count, 0)


if __name__ == '__main__':
    unittest.main()
