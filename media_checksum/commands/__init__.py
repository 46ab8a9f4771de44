"""Command implementations for the media stream checksum tool."""

from .verify import cmd_verify
from .records import cmd_print, cmd_dump, cmd_duplicates

__all__ = ['cmd_verify', 'cmd_print', 'cmd_dump', 'cmd_duplicates']
