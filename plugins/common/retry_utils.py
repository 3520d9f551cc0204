"""
Retry utilities for handling transient connection failures.

Provides a decorator implementing retry logic with exponential backoff,
used around the initial database connect.
"""

import time
import logging
from functools import wraps
from typing import Callable, Tuple, Type, Union

logger = logging.getLogger(__name__)


def retry_on_failure(
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: Union[Type[Exception], Tuple[Type[Exception], ...]] = Exception,
    log_attempts: bool = True,
    sleep: Callable[[float], None] = time.sleep
):
    """
    Decorator to retry function calls on failure with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (default: 3, minimum: 1)
        delay: Initial delay between retries in seconds (default: 1.0)
        backoff: Multiplier for delay after each retry (default: 2.0)
        exceptions: Exception type(s) to catch and retry (default: Exception)
        log_attempts: Whether to log retry attempts (default: True)
        sleep: Function used to wait between attempts

    Returns:
        Decorated function that will retry on failure. The last exception is
        re-raised once the attempts are used up.

    Example:
        connect = retry_on_failure(max_attempts=3, exceptions=(mysql.connector.Error,))(
            mysql.connector.connect)
        conn = connect(host='db1', user='monitor', password='...')
    """
    max_attempts = max(1, int(max_attempts))

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            name = getattr(func, '__name__', repr(func))
            attempt = 1
            current_delay = delay

            while True:
                try:
                    return func(*args, **kwargs)

                except exceptions as e:
                    if attempt >= max_attempts:
                        if log_attempts and max_attempts > 1:
                            logger.error(
                                f"{name} failed after {max_attempts} attempts: {e}"
                            )
                        raise

                    if log_attempts:
                        logger.warning(
                            f"{name} attempt {attempt}/{max_attempts} failed: {e}. "
                            f"Retrying in {current_delay:.1f}s..."
                        )

                    sleep(current_delay)
                    current_delay *= backoff
                    attempt += 1

        return wrapper
    return decorator
