import time
from collections import deque, namedtuple

from memsim_core.clock_algorithm import ClockAlgorithm
from memsim_core.config import MAX_EVENT_HISTORY
from memsim_core.events import EventChannel

ON_DISK = 'disk'  # page table location of a swapped-out page

PAGE_HIT = 'PAGE_HIT'
PAGE_FAULT = 'PAGE_FAULT'
PAGE_SWAP = 'PAGE_SWAP'
PAGE_LOAD = 'PAGE_LOAD'

# Result of MMU.access_memory: either the page is resident or it faulted.
Resident = namedtuple('Resident', ['frame_index'])
Fault = namedtuple('Fault', ['page_number'])

MMUEvent = namedtuple(
    'MMUEvent',
    ['type', 'timestamp', 'pid', 'page_number', 'frame_number', 'victim_pid', 'victim_page_number'],
    defaults=(None, None, None),
)


class MissingPageTableError(LookupError):
    def __init__(self, pid):
        super().__init__(f"No page table for process {pid}")
        self.pid = pid


class InvalidPageNumberError(IndexError):
    def __init__(self, pid, page_number):
        super().__init__(f"Invalid page number {page_number} for process {pid}")
        self.pid = pid
        self.page_number = page_number


class MemoryBookkeepingError(RuntimeError):
    """Page table, RAM and disk disagree about where a page lives."""


class PageNotOnDiskError(MemoryBookkeepingError):
    def __init__(self, pid, page_number):
        super().__init__(f"Page {page_number} not found on disk for process {pid}")
        self.pid = pid
        self.page_number = page_number


class Page:
    def __init__(self, owner_pid, page_number, size):
        self.owner_pid = owner_pid
        self.page_number = page_number
        self.size = size
        self.referenced = 0
        self.modified = 0  # dirty bit, write-back is simulated
        self.access_count = 0
        self.load_time = None
        self.data = [0] * size  # filler, contents carry no meaning

    def __repr__(self):
        return (f"Page(pid={self.owner_pid}, number={self.page_number}, "
                f"R={self.referenced}, M={self.modified})")


class MMU:
    def __init__(self, ram, disk, logger=None, max_event_history=MAX_EVENT_HISTORY, time_source=time.time):
        self.ram = ram
        self.disk = disk
        self.clock = ClockAlgorithm(ram.num_frames)
        # page_tables[pid][page_number] = frame index or ON_DISK
        self.page_tables = {}
        self.page_faults = 0
        self.page_hits = 0
        self.swap_count = 0
        self.event_history = deque(maxlen=max_event_history)
        self.time_source = time_source
        self.logger = logger if logger else print
        self.on_event = EventChannel('MMU event', logger=self.logger)

    def _log(self, message):
        if self.logger:
            self.logger(message)

    def _record_event(self, event_type, pid, page_number, frame_number=None,
                      victim_pid=None, victim_page_number=None):
        event = MMUEvent(event_type, self.time_source(), pid, page_number,
                         frame_number, victim_pid, victim_page_number)
        self.event_history.append(event)
        self.on_event.publish(event)
        return event

    def _get_page_table(self, pid):
        page_table = self.page_tables.get(pid)
        if page_table is None:
            raise MissingPageTableError(pid)
        return page_table

    def initialize_process(self, process):
        """Creates the pages and page table of a newly admitted process.

        Demand paging: every page starts on disk and is brought into RAM by
        its first access. Returns False if the PID already has a page table.
        """
        if process.pid in self.page_tables:
            self._log(f"Error: PID {process.pid} already has a page table. Skipping initialization.")
            return False

        page_size = self.ram.page_size
        num_pages = (process.memory_size + page_size - 1) // page_size
        process.pages = []
        page_table = {}
        for i in range(num_pages):
            page = Page(process.pid, i, page_size)
            process.pages.append(page)
            self.disk.store_page(process.pid, page)
            page_table[i] = ON_DISK

        self.page_tables[process.pid] = page_table
        self._log(f"Initialized {num_pages} pages on disk for PID {process.pid} ({process.memory_size} bytes).")
        return True

    def access_memory(self, process, page_number):
        """Looks up a page. Returns Resident(frame_index) on a hit, Fault(page_number) otherwise."""
        page_table = self._get_page_table(process.pid)
        if page_number not in page_table:
            raise InvalidPageNumberError(process.pid, page_number)

        location = page_table[page_number]
        if location == ON_DISK:
            self.page_faults += 1
            self._record_event(PAGE_FAULT, process.pid, page_number)
            self._log(f"Page fault: PID {process.pid}, VPage {page_number} is on disk.")
            return Fault(page_number)

        frame = self.ram.get_frame(location)
        if frame is None or frame['pid'] != process.pid or frame['page'] is None:
            raise MemoryBookkeepingError(
                f"Page table of PID {process.pid} maps page {page_number} to frame {location}, "
                f"which holds {frame!r}")
        page = frame['page']
        page.referenced = 1
        page.access_count += 1
        self.page_hits += 1
        self._record_event(PAGE_HIT, process.pid, page_number, frame_number=location)
        return Resident(location)

    def handle_page_fault(self, process, page_number):
        """Swaps a page in from disk, evicting a Clock victim if needed. Returns its frame index."""
        page_table = self._get_page_table(process.pid)
        if page_number not in page_table:
            raise InvalidPageNumberError(process.pid, page_number)
        if page_table[page_number] != ON_DISK:
            return page_table[page_number]  # already resident, nothing to load

        victim_idx = self.clock.find_victim(self.ram.frames)
        victim_frame = self.ram.get_frame(victim_idx)
        if victim_frame is not None and victim_frame['page'] is not None:
            victim_pid = victim_frame['pid']
            victim_page = victim_frame['page']
            # A dirty victim would be written back here; contents are filler so storing it is enough.
            self.disk.store_page(victim_pid, victim_page)
            victim_page_table = self.page_tables.get(victim_pid)
            if victim_page_table is not None:
                victim_page_table[victim_page.page_number] = ON_DISK
            self.ram.allocate_frame(victim_idx, None, None)
            self.swap_count += 1
            self._record_event(PAGE_SWAP, process.pid, page_number, frame_number=victim_idx,
                               victim_pid=victim_pid, victim_page_number=victim_page.page_number)
            self._log(f"Swapping out victim: PID {victim_pid}, VPage {victim_page.page_number} "
                      f"from RAM Frame {victim_idx} to disk.")

        page = self.disk.get_page(process.pid, page_number)
        if page is None:
            raise PageNotOnDiskError(process.pid, page_number)
        page.referenced = 1
        page.modified = 0
        page.load_time = self.time_source()
        self.ram.allocate_frame(victim_idx, process.pid, page)
        page_table[page_number] = victim_idx
        self._record_event(PAGE_LOAD, process.pid, page_number, frame_number=victim_idx)
        self._log(f"Loaded PID {process.pid}, VPage {page_number} into RAM Frame {victim_idx}.")
        return victim_idx

    def free_process_memory(self, process):
        """Releases the frames, disk pages and page table of a terminated process."""
        if process.pid not in self.page_tables:
            self._log(f"Error: PID {process.pid} has no page table to free.")
            return False

        freed_frames = self.ram.free_frames(process.pid)
        self.disk.clear_pages(process.pid)
        del self.page_tables[process.pid]
        self._log(f"Freed {freed_frames} frames and all disk pages of PID {process.pid}.")
        return True

    def translate_address(self, process, virtual_address):
        """Translates a virtual address, faulting its page in if needed.

        Returns (frame_index, physical_address).
        """
        page_table = self._get_page_table(process.pid)
        page_number, offset = divmod(virtual_address, self.ram.page_size)
        if not 0 <= page_number < len(page_table):
            raise InvalidPageNumberError(process.pid, page_number)

        result = self.access_memory(process, page_number)
        if isinstance(result, Fault):
            frame_index = self.handle_page_fault(process, page_number)
        else:
            frame_index = result.frame_index
        return frame_index, frame_index * self.ram.page_size + offset

    def has_page_table(self, pid):
        return pid in self.page_tables

    def get_page_table(self, pid):
        return dict(self._get_page_table(pid))

    def get_memory_location_summary(self, pid):
        page_table = self.page_tables.get(pid)
        if page_table is None:
            return {'in_ram': 0, 'on_disk': 0, 'total_pages': 0}
        on_disk = sum(1 for location in page_table.values() if location == ON_DISK)
        return {'in_ram': len(page_table) - on_disk, 'on_disk': on_disk, 'total_pages': len(page_table)}

    def get_hit_ratio(self):
        total = self.page_hits + self.page_faults
        if total == 0:
            return 0.0
        return self.page_hits / total

    def get_event_history(self, limit=None):
        events = list(self.event_history)
        if limit is not None:
            return events[-limit:] if limit > 0 else []
        return events

    def reset_statistics(self):
        self.page_faults = 0
        self.page_hits = 0
        self.swap_count = 0
        self.event_history.clear()

    def reset(self):
        """Full system reset: drops every page table and rewinds the clock hand."""
        self.page_tables.clear()
        self.ram.reset()
        self.disk.reset()
        self.clock.reset()
        self.reset_statistics()
