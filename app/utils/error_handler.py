"""User-safe error handling helpers for the Streamlit flow map."""

from __future__ import annotations

import logging
from functools import wraps
from pathlib import Path
from typing import Callable, Optional

import streamlit as st

from flowmap.errors import EmptyDatasetError, ResourceUnavailable

LOG_DIR = Path("logs")
LOG_DIR.mkdir(parents=True, exist_ok=True)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    handlers=[logging.FileHandler(LOG_DIR / "app_errors.log"), logging.StreamHandler()],
)

logger = logging.getLogger(__name__)


def show_startup_error(message: str, retriable: bool = True, on_retry: Optional[Callable[[], None]] = None) -> None:
    """Show a single failure message with a Retry action. Nothing else is rendered."""

    st.error(message)
    if retriable and st.button("Retry", key="retry_startup"):
        if on_retry is not None:
            on_retry()
        st.rerun()


def safe_execute(operation_name: str = "Operation", reset_callback: Optional[Callable[[], None]] = None):
    """Decorator for safe error handling with optional reset action."""

    def decorator(func: Callable):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except ResourceUnavailable as exc:
                logger.error("%s - Resource unavailable: %s", operation_name, exc)
                st.error(
                    """
                    Data not available.

                    A dataset could not be fetched. Check the locations and flows
                    sources and try again.
                    """
                )
                if st.button("Retry", key=f"retry_{operation_name}"):
                    st.rerun()
                return None
            except EmptyDatasetError as exc:
                logger.error("%s - Empty dataset: %s", operation_name, exc)
                st.error(
                    """
                    No flows to display.

                    The current filters removed every flow. Try a larger maximum
                    distance or reset the settings.
                    """
                )
                if reset_callback is not None and st.button("Reset settings", key=f"reset_{operation_name}"):
                    reset_callback()
                    st.rerun()
                return None
            except Exception as exc:  # pragma: no cover - guardrail for unexpected errors
                logger.exception("%s - Unexpected error: %s", operation_name, exc)
                st.error(
                    """
                    Something went wrong.

                    An unexpected error occurred. This has been logged for investigation.
                    """
                )
                if st.button("Refresh", key=f"refresh_{operation_name}"):
                    st.rerun()
                return None

        return wrapper

    return decorator
