# event_manager.py
import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

if TYPE_CHECKING:
    from tchat_core.state_manager import ConnectionState

logger = logging.getLogger("tchat.event_manager")

MESSAGE_RECEIVED = "MESSAGE_RECEIVED"
CONNECTION_STATE_CHANGED = "CONNECTION_STATE_CHANGED"
CLIENT_CONNECTED = "CLIENT_CONNECTED"
CLIENT_DISCONNECTED = "CLIENT_DISCONNECTED"


class EventManager:
    """
    Publish/subscribe registry. Subscribers are called synchronously, in the
    order they subscribed, with the positional arguments of the dispatch.
    """

    def __init__(self):
        self.subscriptions: Dict[str, List[Callable[..., Any]]] = {}
        logger.info("EventManager initialized.")

    def subscribe(self, event_name: str, handler_function: Callable[..., Any]) -> bool:
        """Subscribe a handler to an event. Returns False if it was rejected."""
        if not callable(handler_function):
            logger.error(f"Attempted to subscribe non-callable handler for event '{event_name}'.")
            return False

        handlers = self.subscriptions.setdefault(event_name, [])
        if handler_function in handlers:
            logger.warning(
                f"Handler '{getattr(handler_function, '__name__', 'unknown')}' already subscribed to event '{event_name}'. Ignoring duplicate."
            )
            return False

        handlers.append(handler_function)
        logger.debug(f"Subscribed handler '{getattr(handler_function, '__name__', 'unknown')}' to event '{event_name}'.")
        return True

    def unsubscribe(self, event_name: str, handler_function: Callable[..., Any]) -> bool:
        """Unsubscribe a handler from an event. Returns False if it was not subscribed."""
        handlers = self.subscriptions.get(event_name)
        if not handlers or handler_function not in handlers:
            logger.debug(f"Attempted to unsubscribe from event '{event_name}', but the handler was not subscribed.")
            return False

        handlers.remove(handler_function)
        # Clean up empty event lists
        if not handlers:
            del self.subscriptions[event_name]
        logger.debug(f"Unsubscribed handler '{getattr(handler_function, '__name__', 'unknown')}' from event '{event_name}'.")
        return True

    def subscriber_count(self, event_name: str) -> int:
        return len(self.subscriptions.get(event_name, []))

    def dispatch_event(self, event_name: str, *args: Any) -> None:
        if event_name not in self.subscriptions:
            logger.debug(f"No subscriptions found for event '{event_name}'.")
            return

        for handler in list(self.subscriptions[event_name]):  # Iterate over a copy
            try:
                handler(*args)
            except Exception as e:
                logger.error(
                    f"Error in event handler '{getattr(handler, '__name__', 'unknown')}' for event '{event_name}': {e}",
                    exc_info=True,
                )

    # --- Connector Event Dispatchers ---
    def dispatch_message_received(self, sender: str, text: str) -> None:
        self.dispatch_event(MESSAGE_RECEIVED, sender, text)

    def dispatch_connection_state_changed(self, old_state: "ConnectionState", new_state: "ConnectionState") -> None:
        self.dispatch_event(CONNECTION_STATE_CHANGED, old_state, new_state)

    def dispatch_client_connected(self, server: str, port: int, nick: str, channel: str) -> None:
        self.dispatch_event(CLIENT_CONNECTED, server, port, nick, channel)

    def dispatch_client_disconnected(self, server: str, port: int, error: Optional[BaseException] = None) -> None:
        self.dispatch_event(CLIENT_DISCONNECTED, server, port, error)
