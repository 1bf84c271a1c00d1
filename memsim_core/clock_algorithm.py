class ClockAlgorithm:
    """Second-chance page replacement over the RAM frame table."""

    def __init__(self, num_frames):
        self.num_frames = num_frames
        self.pointer = 0  # clock hand, persists across evictions

    def _advance(self):
        self.pointer = (self.pointer + 1) % self.num_frames

    def find_victim(self, frames):
        """Returns the index of the frame to replace.

        Free frames are taken immediately. Occupied frames with a set
        referenced bit get a second chance (bit cleared, hand moves on).
        The scan is bounded to two sweeps; past that the frame under the
        hand is taken regardless of its bit.
        """
        max_iterations = self.num_frames * 2
        iterations = 0

        while iterations < max_iterations:
            hand = self.pointer
            frame = frames[hand]

            if frame is None or frame['page'] is None:
                self._advance()
                return hand

            page = frame['page']
            if page.referenced == 0:
                self._advance()
                return hand

            page.referenced = 0
            self._advance()
            iterations += 1

        hand = self.pointer
        self._advance()
        return hand

    def get_pointer(self):
        return self.pointer

    def reset(self):
        self.pointer = 0
