from plcpoll.config.settings import PollSettings

__all__ = ["PollSettings"]
