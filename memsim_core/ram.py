from memsim_core.config import PAGE_SIZE, RAM_FRAMES


class RAM:
    def __init__(self, num_frames=RAM_FRAMES, page_size=PAGE_SIZE):
        self.num_frames = num_frames
        self.page_size = page_size
        # frames[frame_idx] = {'pid': owner_pid, 'page': Page} or None if free
        self.frames = [None] * num_frames

    def allocate_frame(self, index, pid, page):
        """Sets the occupant of a frame, or clears it when pid is None."""
        if pid is None:
            self.frames[index] = None
        else:
            self.frames[index] = {'pid': pid, 'page': page}

    def free_frames(self, pid):
        """Clears every frame owned by pid. Returns how many were freed."""
        freed = 0
        for i, frame in enumerate(self.frames):
            if frame is not None and frame['pid'] == pid:
                self.frames[i] = None
                freed += 1
        return freed

    def get_frame(self, index):
        return self.frames[index]

    def get_process_frame_count(self, pid):
        return sum(1 for frame in self.frames if frame is not None and frame['pid'] == pid)

    def get_free_frames_count(self):
        return sum(1 for frame in self.frames if frame is None)

    def get_memory_map(self):
        """Returns a read-only view of the frame table for display."""
        return tuple(self.frames)

    def reset(self):
        self.frames = [None] * self.num_frames
