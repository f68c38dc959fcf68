"""
warren.bot.router — Component Interaction Router
=================================================

Buttons, select menus and modals carry a ``custom_id`` of the form::

    namespace[:action[:param]*]        e.g.  levels:page:2

The router splits it on ``:``, looks the namespace up in a handler table
filled once at startup, and awaits that handler with the interaction and
the parsed identifier.  The handler does its own dispatch on ``action``.

Missing namespaces are handled differently by origin:

* **select menus / modals** — resolved silently.  Menus go stale all the
  time (expired, or owned by another feature).
* **buttons** — one warning with the full ``custom_id``.  A button nobody
  handles is a wiring mistake operators should see.

Whatever a handler raises is caught here, logged with the ``custom_id``,
and answered with a generic ephemeral failure message.  One bad
interaction never takes the listener down.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

import discord

from warren.constants import INTERACTION_FAILED_MESSAGE

logger = logging.getLogger(__name__)

__all__ = [
    "ComponentOrigin",
    "DispatchOutcome",
    "InteractionHandler",
    "InteractionIdentifier",
    "InteractionRouter",
    "build_custom_id",
    "static_view",
]

IDENTIFIER_SEPARATOR = ":"


class ComponentOrigin(enum.StrEnum):
    BUTTON = "button"
    SELECT_MENU = "select_menu"
    MODAL = "modal"

    @property
    def logs_misses(self) -> bool:
        return self is ComponentOrigin.BUTTON


class DispatchOutcome(enum.StrEnum):
    HANDLED = "handled"
    ROUTING_MISS = "routing_miss"
    HANDLER_FAILURE = "handler_failure"
    IGNORED = "ignored"  # not a component / modal interaction


@dataclass(frozen=True, slots=True)
class InteractionIdentifier:
    """A decoded ``custom_id``.  Tokens are free-form; colons never escape."""

    raw: str
    namespace: str
    remaining: tuple[str, ...] = ()

    @classmethod
    def parse(cls, custom_id: str) -> InteractionIdentifier:
        namespace, *rest = custom_id.split(IDENTIFIER_SEPARATOR)
        return cls(raw=custom_id, namespace=namespace, remaining=tuple(rest))

    @property
    def action(self) -> str | None:
        return self.remaining[0] if self.remaining else None

    @property
    def params(self) -> tuple[str, ...]:
        return self.remaining[1:]


InteractionHandler = Callable[
    [discord.Interaction, InteractionIdentifier], Awaitable[None]
]


def build_custom_id(namespace: str, *parts: object) -> str:
    """Inverse of :meth:`InteractionIdentifier.parse`."""
    tokens = [namespace, *(str(p) for p in parts)]
    for token in tokens:
        if IDENTIFIER_SEPARATOR in token:
            raise ValueError(f"custom_id token may not contain ':' ({token!r})")
    return IDENTIFIER_SEPARATOR.join(tokens)


def static_view(*items: discord.ui.Item) -> discord.ui.View:
    """Wrap components in a stopped view.

    A stopped view is never added to the client's view store, so clicks
    reach ``on_interaction`` and are routed by ``custom_id`` alone.
    """
    view = discord.ui.View(timeout=None)
    for item in items:
        view.add_item(item)
    view.stop()
    return view


class InteractionRouter:
    """Namespace → handler table, read-only once :meth:`freeze` is called."""

    def __init__(self) -> None:
        self._handlers: dict[str, InteractionHandler] | Mapping[str, InteractionHandler] = {}
        self._frozen = False

    # -------------------------------------------------------------------
    # Registration (startup only)
    # -------------------------------------------------------------------
    def register(self, namespace: str, handler: InteractionHandler) -> None:
        if self._frozen:
            raise RuntimeError(
                f"Cannot register {namespace!r}: router is frozen"
            )
        if not namespace or IDENTIFIER_SEPARATOR in namespace:
            raise ValueError(f"Invalid namespace {namespace!r}")
        if namespace in self._handlers:
            raise ValueError(f"Namespace {namespace!r} already registered")
        self._handlers[namespace] = handler
        logger.debug("Registered interaction namespace: %s", namespace)

    def freeze(self) -> None:
        """Seal the table.  Called once after every cog has loaded."""
        if not self._frozen:
            self._handlers = MappingProxyType(dict(self._handlers))
            self._frozen = True
            logger.info(
                "Interaction router ready: %s",
                ", ".join(sorted(self._handlers)) or "(no namespaces)",
            )

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def namespaces(self) -> frozenset[str]:
        return frozenset(self._handlers)

    # -------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------
    @staticmethod
    def resolve_origin(interaction: discord.Interaction) -> ComponentOrigin | None:
        if interaction.type == discord.InteractionType.modal_submit:
            return ComponentOrigin.MODAL
        if interaction.type != discord.InteractionType.component:
            return None
        data = interaction.data or {}
        if data.get("component_type") == discord.ComponentType.button.value:
            return ComponentOrigin.BUTTON
        return ComponentOrigin.SELECT_MENU

    async def dispatch(self, interaction: discord.Interaction) -> DispatchOutcome:
        """Entry point for the bot's ``on_interaction`` listener."""
        origin = self.resolve_origin(interaction)
        custom_id = (interaction.data or {}).get("custom_id")
        if origin is None or not isinstance(custom_id, str):
            return DispatchOutcome.IGNORED
        return await self.route(interaction, custom_id, origin)

    async def route(
        self,
        interaction: discord.Interaction,
        custom_id: str,
        origin: ComponentOrigin,
    ) -> DispatchOutcome:
        identifier = InteractionIdentifier.parse(custom_id)
        handler = self._handlers.get(identifier.namespace)

        if handler is None:
            if origin.logs_misses:
                logger.warning(
                    "No handler found for %s with namespace %r (custom_id=%r)",
                    origin.value, identifier.namespace, custom_id,
                )
            return DispatchOutcome.ROUTING_MISS

        try:
            await handler(interaction, identifier)
        except Exception:
            logger.exception(
                "Interaction handler %r failed for %s custom_id=%r",
                identifier.namespace, origin.value, custom_id,
            )
            await self._acknowledge_failure(interaction, custom_id)
            return DispatchOutcome.HANDLER_FAILURE
        return DispatchOutcome.HANDLED

    @staticmethod
    async def _acknowledge_failure(
        interaction: discord.Interaction, custom_id: str
    ) -> None:
        try:
            if interaction.response.is_done():
                await interaction.followup.send(
                    INTERACTION_FAILED_MESSAGE, ephemeral=True
                )
            else:
                await interaction.response.send_message(
                    INTERACTION_FAILED_MESSAGE, ephemeral=True
                )
        except Exception as exc:
            logger.warning(
                "Could not acknowledge failed interaction %r: %s", custom_id, exc
            )
