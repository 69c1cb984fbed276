#!/usr/bin/env python3
"""
Console output for the Music Manager commands.

Log lines go through logging; these helpers are for the short coloured
messages and summaries a user reads at the end of a command.
"""

import colorama
from colorama import Fore, Style

# Initialize colorama
colorama.init(autoreset=True)

def print_success(text):
    """Print a success message in green."""
    print(f"{Fore.GREEN}{text}")

def print_error(text):
    """Print an error message in red."""
    print(f"{Fore.RED}{text}")

def print_header(text):
    """Print the command banner in cyan."""
    rule = "=" * 50
    print(f"\n{Fore.CYAN}{Style.BRIGHT}{rule}\n{text}\n{rule}")

def print_summary(title, rows):
    """
    Print a titled list of label/value rows.

    Example:
        Tag sync
          files     1204
          updated   17
    """
    print(f"\n{Fore.CYAN}{Style.BRIGHT}{title}{Style.RESET_ALL}")
    width = max((len(label) for label, _ in rows), default=0)
    for label, value in rows:
        print(f"  {Fore.WHITE}{label.ljust(width)}  {value}{Style.RESET_ALL}")
