"""Bell Pull: a Telegram assistant that remembers things for you."""
