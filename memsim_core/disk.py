class Disk:
    """Swap space: pages evicted from RAM, keyed by owner PID then page number."""

    def __init__(self):
        self.pages = {}  # pid -> {page_number: Page}

    def store_page(self, pid, page):
        self.pages.setdefault(pid, {})[page.page_number] = page

    def get_page(self, pid, page_number):
        """Removes and returns a swapped page, or None if it is not on disk."""
        process_pages = self.pages.get(pid)
        if not process_pages or page_number not in process_pages:
            return None
        page = process_pages.pop(page_number)
        if not process_pages:
            del self.pages[pid]
        return page

    def has_pages(self, pid):
        return bool(self.pages.get(pid))

    def get_process_pages(self, pid):
        """Returns a copy of pid's swapped pages (empty dict if none)."""
        return dict(self.pages.get(pid, {}))

    def clear_pages(self, pid):
        self.pages.pop(pid, None)

    def get_all_pages_info(self):
        return [
            {'pid': pid, 'page_count': len(process_pages), 'page_numbers': sorted(process_pages)}
            for pid, process_pages in self.pages.items()
        ]

    def get_total_pages(self):
        return sum(len(process_pages) for process_pages in self.pages.values())

    def reset(self):
        self.pages.clear()
