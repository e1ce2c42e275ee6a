"""Social network delivery."""

from tcrbot.messaging.twitter import TwitterMessenger

__all__ = ["TwitterMessenger"]
