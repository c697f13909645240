"""
=============================================================================
URL ROUTER
=============================================================================

Maps an exact (path, method) pair to a handler.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING TABLE                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   ("/hello", GET)   → hello                                          │
    │   ("/hello", POST)  → create_hello                                   │
    │   ("/health", GET)  → health.check                                   │
    │                                                                      │
    │   lookup(GET,  "/hello")   → hello                                   │
    │   lookup(POST, "/health")  → None   (wrong method)                   │
    │   lookup(GET,  "/hello/")  → None   (no trailing-slash folding)      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Matching is plain dictionary equality: no prefixes, no patterns, no
normalization of case or trailing slashes. Registering the same pair twice
replaces the earlier handler.

=============================================================================
HANDLERS
=============================================================================

A handler is any callable that takes the HTTPRequest: a function, a
closure, a bound method, or an object with __call__. That lets a handler
carry its own state instead of reaching for globals:

    class CounterHandler:
        def __init__(self):
            self.hits = 0

        def __call__(self, request):
            self.hits += 1
            request.send(str(self.hits))

    router.register(Method.GET, "/count", CounterHandler())

The handler writes its own response through the request. Returning
normally means success; raising means failure.

=============================================================================
"""

from typing import Any, Callable, Dict, List, Optional, Tuple, Union
import logging

from .method import Method
from .request import HTTPRequest


logger = logging.getLogger(__name__)


Handler = Callable[[HTTPRequest], Any]
RouteKey = Tuple[str, Method]


class Router:
    """
    Exact-match routing table.

    Usage:
        router = Router()

        @router.get("/hello")
        def hello(request):
            request.send("hi")

        router.register("POST", "/echo", echo)
        handler = router.lookup(Method.GET, "/hello")

    The table is meant to be filled before the server starts accepting
    connections. HTTPServer.listen() calls freeze(), after which register()
    raises.
    """

    def __init__(self):
        self._routes: Dict[RouteKey, Handler] = {}
        self._frozen = False

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def register(self, method: Union[Method, str], path: str, handler: Handler) -> Handler:
        """
        Bind a handler to (path, method), replacing any earlier one.

        Args:
            method: Method member or verb string ("get", "POST", ...).
            path: Exact request target to match.
            handler: Callable taking the HTTPRequest.

        Returns:
            The handler, so register() can back a decorator.

        Raises:
            RuntimeError: If the table is frozen.
            UnknownMethod: If method is a string that is not a verb.
        """
        if self._frozen:
            raise RuntimeError("Routing table is frozen; register routes before listen()")
        if not callable(handler):
            raise TypeError(f"Handler for {path} must be callable, got {handler!r}")

        key = (path, _as_method(method))
        if key in self._routes:
            logger.debug(f"Replacing handler for {key[1]} {path}")
        self._routes[key] = handler
        return handler

    def route(self, path: str, method: Union[Method, str]) -> Callable[[Handler], Handler]:
        """Decorator form of register()."""
        def decorator(handler: Handler) -> Handler:
            return self.register(method, path, handler)
        return decorator

    def get(self, path: str) -> Callable[[Handler], Handler]:
        """Register a GET route."""
        return self.route(path, Method.GET)

    def post(self, path: str) -> Callable[[Handler], Handler]:
        """Register a POST route."""
        return self.route(path, Method.POST)

    def put(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, Method.PUT)

    def delete(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, Method.DELETE)

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def lookup(self, method: Union[Method, str], path: str) -> Optional[Handler]:
        """
        Find the handler for exactly (path, method).

        Returns:
            The handler, or None if nothing is registered for the pair.
        """
        return self._routes.get((path, _as_method(method)))

    # =========================================================================
    # LIFECYCLE / INTROSPECTION
    # =========================================================================

    def freeze(self) -> None:
        """Make the table read-only."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def routes(self) -> List[RouteKey]:
        """Registered (path, method) pairs in registration order."""
        return list(self._routes)

    def __len__(self) -> int:
        return len(self._routes)

    def __contains__(self, key: RouteKey) -> bool:
        path, method = key
        return (path, _as_method(method)) in self._routes


def _as_method(method: Union[Method, str]) -> Method:
    if isinstance(method, Method):
        return method
    return Method.from_str(method)
