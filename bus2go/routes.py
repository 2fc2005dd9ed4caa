"""Route lookup for the routes view."""

from __future__ import annotations

from typing import Iterable

from .models import Route


def filter_routes(routes: Iterable[Route], query: str) -> list[Route]:
    """Routes whose number, origin or destination contains *query* (any case)."""

    needle = query.strip().lower()
    if not needle:
        return list(routes)
    return [
        route
        for route in routes
        if needle in route.route_number.lower()
        or needle in route.origin.lower()
        or needle in route.destination.lower()
    ]


def describe_stops(route: Route) -> str:
    return " → ".join([route.origin, *route.stops, route.destination])
