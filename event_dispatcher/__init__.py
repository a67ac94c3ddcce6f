"""Synchronous publish/subscribe dispatcher.

Handlers are registered for named events, optionally scoped behind a
namespace prefix, and called when a matching event is emitted. Importing the
package does not configure logging or read settings.
"""

from .dispatcher import Dispatcher, Handler, UniversalHandler

__all__ = [
    "Dispatcher",
    "Handler",
    "UniversalHandler",
    "__version__",
]

__version__ = "0.1.0"
