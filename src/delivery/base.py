"""
Module to contain base class for Delivery channels
"""
from abc import ABC, abstractmethod

from core.entities import DailyPayload


class DeliveryChannel(ABC):
    """
    Base interface for all delivery channels.
    """

    name: str

    @abstractmethod
    async def deliver(self, payload: DailyPayload) -> None:
        """
        Deliver one day's briefs.
        Must raise exceptions on failure (handled upstream).
        """
        raise NotImplementedError
