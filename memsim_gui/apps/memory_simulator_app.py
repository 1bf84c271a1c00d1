import random

import PySimpleGUI as sg

from memsim_core.config import DEFAULT_CONFIG
from memsim_core.simulator import Simulator


class MemorySimulatorApp:
    def _show_settings_dialog(self):
        default_settings = {
            'ram_frames': DEFAULT_CONFIG['ram_frames'],
            'page_size': DEFAULT_CONFIG['page_size'],
            'processor_quantum': DEFAULT_CONFIG['processor_quantum'],
            'max_processes': DEFAULT_CONFIG['max_processes'],
        }
        layout = [
            [sg.Text("Initial Simulation Settings", font=("Helvetica", 14))],
            [sg.Text("RAM Frames:"), sg.Input(default_settings['ram_frames'], size=(10, 1), key='-RAM_FRAMES-')],
            [sg.Text("Page Size (bytes):"), sg.Input(default_settings['page_size'], size=(10, 1), key='-PAGE_SIZE-')],
            [sg.Text("Quantum (ms):"), sg.Input(default_settings['processor_quantum'], size=(10, 1), key='-QUANTUM-')],
            [sg.Text("Max Processes:"), sg.Input(default_settings['max_processes'], size=(10, 1), key='-MAX_PROCS-')],
            [sg.Button("Apply Settings"), sg.Button("Reset Defaults"), sg.Button("Close Settings")]
        ]
        window = sg.Window("Configure Simulation", layout, modal=True, finalize=True)

        parsed_settings = None
        while True:
            event, values = window.read()
            if event in (sg.WIN_CLOSED, "Close Settings"):
                parsed_settings = None
                break
            elif event == "Reset Defaults":
                window['-RAM_FRAMES-'].update(default_settings['ram_frames'])
                window['-PAGE_SIZE-'].update(default_settings['page_size'])
                window['-QUANTUM-'].update(default_settings['processor_quantum'])
                window['-MAX_PROCS-'].update(default_settings['max_processes'])
            elif event == "Apply Settings":
                try:
                    parsed_settings = {
                        'ram_frames': int(values['-RAM_FRAMES-']),
                        'page_size': int(values['-PAGE_SIZE-']),
                        'processor_quantum': int(values['-QUANTUM-']),
                        'max_processes': int(values['-MAX_PROCS-']),
                    }
                    self.simulator.initialize(**parsed_settings)
                    break
                except ValueError as e:
                    parsed_settings = None
                    sg.popup_error(f"Invalid settings: {e}", title="Input Error")

        window.close()
        return parsed_settings

    def __init__(self):
        self.simulator = Simulator(logger=self._log)
        self.window = None

        if self._show_settings_dialog() is None:
            print("Memory Simulator setup cancelled by user.")
            return

        controls_layout = [
            sg.Button("Add Process", key='-ADD_PROC-'),
            sg.Button("Start", key='-START-'),
            sg.Button("Pause", key='-PAUSE-'),
            sg.Button("Step", key='-STEP-'),
            sg.Button("Reset", key='-RESET-'),
            sg.Text("Time: 0", key='-SIM_TIME-', size=(12, 1)),
        ]

        state_layout = [
            [sg.Text("RAM Frames:")],
            [sg.Multiline(size=(50, 12), key='-RAM-', disabled=True)],
            [sg.Text("Disk:")],
            [sg.Multiline(size=(50, 5), key='-DISK-', disabled=True)],
        ]

        scheduler_layout = [
            [sg.Text("Queues:")],
            [sg.Multiline(size=(50, 4), key='-QUEUES-', disabled=True)],
            [sg.Text("Processes:")],
            [sg.Multiline(size=(50, 8), key='-PROCESSES-', disabled=True)],
            [sg.Text("Statistics:")],
            [sg.Multiline(size=(50, 5), key='-STATS-', disabled=True)],
        ]

        layout = [
            [sg.Text("Virtual Memory Simulator (Clock Replacement)", font=("Helvetica", 16))],
            controls_layout,
            [sg.Column(state_layout), sg.Column(scheduler_layout)],
            [sg.Text("MMU Events:")],
            [sg.Multiline(size=(102, 8), key='-EVENTS-', disabled=True, autoscroll=True)],
            [sg.Text("Log:")],
            [sg.Multiline(size=(102, 6), key='-LOG_OUTPUT-', write_only=True, autoscroll=True)],
            [sg.Button("Close")]
        ]

        self.window = sg.Window("Memory Simulator", layout, finalize=True)
        self._full_refresh()

    def _log(self, message):
        if self.window is not None:
            self.window['-LOG_OUTPUT-'].print(message)
        else:
            print(message)

    def _update_ram_display(self):
        lines = []
        pointer = self.simulator.processor.mmu.clock.get_pointer()
        for i, frame in enumerate(self.simulator.ram.get_memory_map()):
            hand = "<-" if i == pointer else ""
            if frame:
                page = frame['page']
                lines.append(f"F{i:<2} PID:{frame['pid']} VP:{page.page_number} "
                             f"R:{page.referenced} M:{page.modified} Acc:{page.access_count} {hand}")
            else:
                lines.append(f"F{i:<2} Free {hand}")
        self.window['-RAM-'].update("\n".join(lines))

    def _update_disk_display(self):
        info = self.simulator.disk.get_all_pages_info()
        text = "\n".join(f"PID {entry['pid']}: {entry['page_count']} pages {entry['page_numbers']}" for entry in info)
        self.window['-DISK-'].update(text or "Empty")

    def _update_scheduler_display(self):
        processor = self.simulator.processor
        self.window['-QUEUES-'].update("\n".join(processor.get_all_queues_str_list()))
        process_lines = []
        for p in self.simulator.processes:
            summary = p.get_memory_location_summary(processor.mmu)
            process_lines.append(f"{p.name} [{p.state}] prio {p.priority} rem {p.remaining_time}ms "
                                 f"pages {summary['in_ram']}/{p.num_pages} in RAM")
        self.window['-PROCESSES-'].update("\n".join(process_lines))

    def _update_stats_display(self):
        metrics = self.simulator.get_metrics()
        self.window['-STATS-'].update(
            f"Page Faults: {metrics['page_faults']}  Hits: {metrics['page_hits']}  Swaps: {metrics['swap_count']}\n"
            f"Hit Ratio: {metrics['hit_ratio'] * 100:.1f}%\n"
            f"RAM Usage: {metrics['ram_usage']:.1f}%  Disk Pages: {metrics['disk_pages']}\n"
            f"Processes: {metrics['active_processes']} active, {metrics['terminated_processes']} terminated")
        events = self.simulator.processor.mmu.get_event_history(limit=20)
        self.window['-EVENTS-'].update("\n".join(
            f"{e.type:<10} PID {e.pid} page {e.page_number} frame {e.frame_number}"
            + (f" victim PID {e.victim_pid} page {e.victim_page_number}" if e.victim_pid is not None else "")
            for e in reversed(events)))

    def _full_refresh(self):
        self.window['-SIM_TIME-'].update(f"Time: {self.simulator.current_time}")
        if not self.simulator.is_initialized:
            return
        self._update_ram_display()
        self._update_disk_display()
        self._update_scheduler_display()
        self._update_stats_display()

    def handle_event(self, event, values):
        if event in (sg.WIN_CLOSED, 'Close'):
            return 'close'

        if event == sg.TIMEOUT_EVENT:
            if self.simulator.tick():
                self._full_refresh()
            return None

        if event == '-ADD_PROC-':
            if self.simulator.add_process(can_be_blocked=random.random() > 0.5) is None:
                sg.popup_error("Process limit reached.", title="Add Process")
        elif event == '-START-':
            self.simulator.start()
        elif event == '-PAUSE-':
            self.simulator.pause()
        elif event == '-STEP-':
            self.simulator.step()
        elif event == '-RESET-':
            self.simulator.reset()
            self.simulator.initialize(**{key: self.simulator.config[key] for key in
                                         ('ram_frames', 'page_size', 'processor_quantum', 'max_processes')})
        self._full_refresh()
        return None

    def run(self):
        if self.window is None:
            return
        # One read per tick; a tick always finishes before the next timeout fires.
        interval = self.simulator.config['tick_interval_ms']
        while True:
            event, values = self.window.read(timeout=interval)
            if self.handle_event(event, values) == 'close':
                break
        self.window.close()


def main():
    app = MemorySimulatorApp()
    app.run()


if __name__ == '__main__':
    main()
