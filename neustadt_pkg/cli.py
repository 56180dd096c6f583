#!/usr/bin/env python3
"""
Command-line interface for the Neustadt site builder.
"""

import os
import sys
import shutil
import argparse
from typing import List, Optional

from . import __version__
from .core import Neustadt
from .settings import NeustadtSettings

STARTER_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'starter')


def create_starter_structure(target_dir: Optional[str] = None) -> List[str]:
    """Copy the starter layouts and content into `target_dir`, never overwriting."""
    target_dir = target_dir or os.getcwd()
    created = []

    for root, dirs, files in os.walk(STARTER_DIR):
        dirs.sort()
        rel_root = os.path.relpath(root, STARTER_DIR)
        dest_root = os.path.normpath(os.path.join(target_dir, rel_root))
        os.makedirs(dest_root, exist_ok=True)

        for filename in sorted(files):
            src_path = os.path.join(root, filename)
            dest_path = os.path.join(dest_root, filename)
            rel_dest = os.path.relpath(dest_path, target_dir)
            if os.path.exists(dest_path):
                print(f"File already exists: {rel_dest}")
            else:
                shutil.copy2(src_path, dest_path)
                created.append(rel_dest)
                print(f"Created: {rel_dest}")

    return created


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Neustadt - static site builder')
    parser.add_argument('--source', type=str,
                        help='Directory containing markdown content')
    parser.add_argument('--destination', type=str,
                        help='Output directory for the rendered site')
    parser.add_argument('--layouts', type=str,
                        help='Directory containing layouts and partials')
    parser.add_argument('--port', type=int,
                        help='Port for the development server')
    parser.add_argument('--no-serve', dest='serve', action='store_false', default=None,
                        help='Build once and exit without serving or watching')
    parser.add_argument('--no-watch', dest='watch', action='store_false', default=None,
                        help='Serve without rebuilding on changes')
    parser.add_argument('--drafts', dest='include_drafts', action='store_true', default=None,
                        help='Keep draft content in the output')
    parser.add_argument('--minify', action='store_true', default=None,
                        help='Add minified copies of CSS and JS files')
    parser.add_argument('--init', type=str, choices=['yml', 'yaml', 'json'],
                        help='Create a sample configuration file and starter site')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    # Handle init command
    if args.init:
        settings_loader = NeustadtSettings()
        config_path = settings_loader.create_sample_config(args.init)
        print(f"Created sample configuration file: {config_path}")

        print("\nCreating starter site structure...")
        create_starter_structure()

        print("\nYour new site is ready! Run 'neustadt' to build and serve it.")
        return

    # Load settings from configuration file
    settings_loader = NeustadtSettings()
    settings_loader.load_settings()

    # Command line arguments take precedence
    args_dict = {k: v for k, v in vars(args).items() if v is not None and k != 'init'}
    final_settings = settings_loader.merge_with_args(args_dict)

    try:
        site = Neustadt(final_settings)
        site.build()

        if final_settings['serve']:
            site.serve()
            if final_settings['watch']:
                site.watch()
            site.run_forever()
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
