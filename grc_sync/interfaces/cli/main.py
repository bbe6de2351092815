#!/usr/bin/env python3
"""
GRC Sync management tool.

Every module of ``grc_sync.interfaces.cli.commands`` that defines a
``Command`` class is a command named after the module.
"""

import argparse
import importlib
import pkgutil
import sys
from typing import Dict, List, Optional, Type

from . import commands as commands_package
from .commands.base import BaseCommand

PROG = "grc-sync"


class CLIManager:
    def __init__(self):
        self.available_commands = self._discover_commands()

    def _discover_commands(self) -> Dict[str, Type[BaseCommand]]:
        found = {}
        for module_info in pkgutil.iter_modules(commands_package.__path__):
            name = module_info.name
            if name.startswith("_") or name == "base":
                continue
            try:
                module = importlib.import_module(f"{commands_package.__name__}.{name}")
            except ImportError as e:
                print(f"Warning: Could not load command '{name}': {e}")
                continue
            command_class = getattr(module, "Command", None)
            if command_class is not None:
                found[name] = command_class
        return found

    def print_usage(self):
        print(f"Usage: {PROG} <command> [args...]")
        print()
        print("Available commands:")
        print("=" * 40)
        if not self.available_commands:
            print("No commands found.")
        for name in sorted(self.available_commands):
            print(f"  {name:<20} {self.available_commands[name].description}")
        print()
        print(f"Use '{PROG} help <command>' for help on a specific command.")

    def print_command_help(self, command_name: str):
        command_class = self.available_commands.get(command_name)
        if command_class is None:
            print(f"Unknown command: {command_name}")
            return
        command_class().help()

    def run_command(self, command_name: str, args: List[str]):
        command_class = self.available_commands.get(command_name)
        if command_class is None:
            print(f"Unknown command: {command_name}")
            print(f"Use '{PROG} help' to see available commands.")
            sys.exit(1)

        try:
            command_class().run(args)
        except KeyboardInterrupt:
            print("Interrupted.")
        except Exception as e:
            print(f"Error running command '{command_name}': {e}")
            sys.exit(1)


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(prog=PROG, description="GRC Sync management tool", add_help=False)
    parser.add_argument("command", nargs="?", help="Command to run")
    parser.add_argument("args", nargs="*", help="Arguments for the command")

    # Options belong to the command and are passed through untouched
    parsed, passthrough = parser.parse_known_args(argv)
    command_args = parsed.args + passthrough

    manager = CLIManager()
    if parsed.command and parsed.command != "help":
        manager.run_command(parsed.command, command_args)
    elif command_args:
        manager.print_command_help(command_args[0])
    else:
        print("GRC Sync management tool")
        manager.print_usage()


if __name__ == "__main__":
    main()
