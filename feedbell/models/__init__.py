"""Data models shared by the checkers and the command layer."""

from .channel_link import ChannelLink, Platform

__all__ = [
    "ChannelLink",
    "Platform",
]
