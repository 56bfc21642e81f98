"""Discord bot process: client, config, logging and command cogs."""
