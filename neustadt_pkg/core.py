import os
import time
import logging
from datetime import datetime

from .pipeline import Pipeline
from .server import DevServer, Watcher
from .settings import NeustadtSettings, merge_settings
from .steps import Drafts, Collections, Highlight, Markdown, Permalinks, Layouts, Minify


class InfoFilter(logging.Filter):
    """Filter to allow only selected INFO messages (and all warnings) to be shown in the console."""
    def filter(self, record):
        if record.levelno >= logging.WARNING:
            return True
        allowed_messages = [
            "built!",
            "Build completed in",
            "Serving",
            "Watching",
            "Rebuilding in response to",
            "Including drafts",
        ]
        return any(msg in record.getMessage() for msg in allowed_messages)


class Neustadt:
    """
    The site build: a fixed pipeline of drafts, collections, highlight,
    markdown, permalinks and layouts (plus minify when enabled), with an
    optional development server and watcher around it.
    """

    def __init__(self, settings=None, base_dir=None):
        self.settings = merge_settings(NeustadtSettings.DEFAULT_SETTINGS, settings or {})
        self.base_dir = base_dir or os.getcwd()

        self.source_dir = self._resolve(self.settings['source'])
        self.destination_dir = self._resolve(self.settings['destination'])
        self.layouts_dir = self._resolve(self.settings['layouts'])
        self.site_name = self.settings['site'].get('name', 'Site')
        self.files_written = 0

        self.setup_logging()
        self.pipeline = self.create_pipeline()
        self.server = None
        self.watcher = None

    def _resolve(self, path):
        path = os.path.expanduser(path)
        if os.path.isabs(path):
            return path
        return os.path.join(self.base_dir, path)

    def setup_logging(self):
        """Set up logging configuration."""
        self.logger = logging.getLogger('Neustadt')
        self.logger.setLevel(logging.DEBUG)

        if not self.logger.handlers:
            # Console handler with filter
            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.INFO)
            console_handler.addFilter(InfoFilter())
            console_handler.setFormatter(logging.Formatter('%(message)s'))
            self.logger.addHandler(console_handler)

            # File handler for all logs
            log_dir = self.settings.get('log_dir')
            if log_dir:
                logs_dir = self._resolve(log_dir)
                os.makedirs(logs_dir, exist_ok=True)
                log_filename = datetime.now().strftime('neustadt_%Y-%m-%d_%H-%M-%S.log')

                file_handler = logging.FileHandler(os.path.join(logs_dir, log_filename))
                file_handler.setLevel(logging.DEBUG)
                file_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
                file_handler.setFormatter(file_formatter)
                self.logger.addHandler(file_handler)

    def create_pipeline(self):
        """Wire the steps in their fixed order."""
        s = self.settings
        steps = []
        if s['include_drafts']:
            self.logger.info("Including drafts in the build")
        else:
            steps.append(Drafts())
        steps.append(Collections(s['collections']))
        steps.append(Highlight(stylesheet=s['highlight_stylesheet'], style=s['highlight_style']))
        steps.append(Markdown())
        steps.append(Permalinks(pattern=s['permalink_pattern']))
        steps.append(Layouts(
            self.layouts_dir,
            pattern=s['layout_pattern'],
            default=s['default_layout'],
            partials=s['partials']
        ))
        if s['minify']:
            steps.append(Minify())

        return Pipeline(
            self.source_dir,
            self.destination_dir,
            metadata={'site': s['site']},
            steps=steps,
            clean=s['clean']
        )

    def build(self):
        """Run the whole pipeline once. Any failure raises BuildError."""
        start_time = time.time()
        self.logger.debug(f"Building {self.source_dir} -> {self.destination_dir}")

        files = self.pipeline.run()
        self.files_written = len(files)

        total_time = time.time() - start_time
        self.logger.info(f"Build completed in {total_time:.6f} seconds ({self.files_written} files).")
        self.logger.info(f"{self.site_name} built!")
        return files

    def serve(self):
        """Serve the destination directory over HTTP."""
        self.server = DevServer(
            self.destination_dir,
            host=self.settings['host'],
            port=self.settings['port'],
            verbose=self.settings['verbose']
        ).start()
        return self.server

    def watch(self):
        """Rebuild whenever the source or layouts change."""
        paths = self.settings['watch_paths'] or [self.settings['source'], self.settings['layouts']]
        self.watcher = Watcher(
            [self._resolve(p) for p in paths],
            self.build,
            ignore=self.destination_dir
        ).start()
        return self.watcher

    def run_forever(self):
        """Block until interrupted, then stop the server and watcher."""
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.logger.info("Stopping development server")
        finally:
            self.stop()

    def stop(self):
        if self.watcher:
            self.watcher.stop()
            self.watcher = None
        if self.server:
            self.server.stop()
            self.server = None
