"""
User Notifications

Transient, user-visible messages ("toasts"). Every failed user action
produces exactly one error notification; successful writes produce a
success notification.

The core never talks to a UI directly: front ends plug in a Notifier.
"""

from abc import ABC, abstractmethod

import streamlit as st
import structlog


class Notifier(ABC):
    """Abstract notification sink."""

    @abstractmethod
    def success(self, message: str) -> None:
        pass

    @abstractmethod
    def info(self, message: str) -> None:
        pass

    @abstractmethod
    def warning(self, message: str) -> None:
        pass

    @abstractmethod
    def error(self, message: str) -> None:
        pass


class LogNotifier(Notifier):
    """
    Writes notifications to the structured log.

    Default sink for headless use (CLI, scripts, background jobs).
    """

    def __init__(self):
        self._logger = structlog.get_logger("finance_tracker.notifications")

    def success(self, message: str) -> None:
        self._logger.info("notification", level="success", message=message)

    def info(self, message: str) -> None:
        self._logger.info("notification", level="info", message=message)

    def warning(self, message: str) -> None:
        self._logger.warning("notification", level="warning", message=message)

    def error(self, message: str) -> None:
        self._logger.error("notification", level="error", message=message)


class StreamlitNotifier(Notifier):
    """Shows notifications as Streamlit toasts."""

    def success(self, message: str) -> None:
        st.toast(message, icon="✅")

    def info(self, message: str) -> None:
        st.toast(message, icon="ℹ️")

    def warning(self, message: str) -> None:
        st.toast(message, icon="⚠️")

    def error(self, message: str) -> None:
        st.toast(message, icon="❌")
