"""feedbell: announces new YouTube uploads and subreddit posts on Discord."""

__version__ = "0.3.0"
