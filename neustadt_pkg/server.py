"""
Development server and file watcher.

The server serves the destination directory from a daemon thread; the
watcher reruns the build whenever something under the watched paths changes.
"""

import os
import logging
import threading
from functools import partial
from http.server import ThreadingHTTPServer, SimpleHTTPRequestHandler

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

CHANGE_EVENTS = ('created', 'modified', 'deleted', 'moved')


class QuietHandler(SimpleHTTPRequestHandler):
    """Request handler that logs through the Neustadt logger."""

    verbose = False
    logger = logging.getLogger('Neustadt.serve')

    def log_message(self, format, *args):
        if self.verbose:
            self.logger.info(f"{self.address_string()} - {format % args}")


class DevServer:
    def __init__(self, directory, host='localhost', port=8081, verbose=True):
        self.directory = os.path.abspath(directory)
        self.host = host
        self.port = port
        self.verbose = verbose
        self.httpd = None
        self.thread = None
        self.logger = logging.getLogger('Neustadt.serve')

    @property
    def url(self):
        return f"http://{self.host}:{self.port}/"

    def start(self):
        handler_class = type('Handler', (QuietHandler,), {'verbose': self.verbose})
        handler = partial(handler_class, directory=self.directory)
        self.httpd = ThreadingHTTPServer((self.host, self.port), handler)
        # Port 0 asks the OS for a free port
        self.port = self.httpd.server_address[1]
        self.thread = threading.Thread(target=self.httpd.serve_forever, daemon=True)
        self.thread.start()
        self.logger.info(f"Serving {self.directory} at {self.url}")
        return self

    def stop(self):
        if self.httpd:
            self.httpd.shutdown()
            self.httpd.server_close()
            self.httpd = None
        if self.thread:
            self.thread.join(timeout=5)
            self.thread = None


class RebuildHandler(FileSystemEventHandler):
    """Run `rebuild` for every file event outside the ignored directory."""

    def __init__(self, rebuild, ignore=None):
        super().__init__()
        self.rebuild = rebuild
        self.ignore = os.path.abspath(ignore) if ignore else None
        self.lock = threading.Lock()
        self.logger = logging.getLogger('Neustadt.watch')

    def should_rebuild(self, event):
        # Reads during a build emit opened/closed events on some platforms
        if event.is_directory or event.event_type not in CHANGE_EVENTS:
            return False
        path = os.path.abspath(event.src_path)
        if self.ignore and (path == self.ignore or path.startswith(self.ignore + os.sep)):
            return False
        return True

    def on_any_event(self, event):
        if not self.should_rebuild(event):
            return
        with self.lock:
            self.logger.info(f"Rebuilding in response to {event.event_type} {event.src_path}")
            try:
                self.rebuild()
            except Exception as e:
                self.logger.error(f"Rebuild failed: {e}")


class Watcher:
    def __init__(self, paths, rebuild, ignore=None):
        self.paths = [p for p in paths if os.path.isdir(p)]
        self.handler = RebuildHandler(rebuild, ignore)
        self.observer = None
        self.logger = logging.getLogger('Neustadt.watch')

    def start(self):
        self.observer = Observer()
        for path in self.paths:
            self.observer.schedule(self.handler, path, recursive=True)
        self.observer.start()
        self.logger.info(f"Watching {', '.join(self.paths)} for changes")
        return self

    def stop(self):
        if self.observer:
            self.observer.stop()
            self.observer.join()
            self.observer = None
