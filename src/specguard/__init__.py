"""specguard - grade a project tree with static validators."""

__version__ = "0.1.0"
