"""
Transport-agnostic chat menus.

Overview
--------
:class:`ChatFlow` turns callback data (what a pressed button sends) into a
:class:`Reply`: HTML text plus an inline keyboard. It keeps a small state per
chat (rank, position, last hero list, picked hero) so "back" buttons can
re-render without asking the upstream API again.

Callback data understood:

- ``start`` / ``nav_home``: rank keyboard;
- ``rank_<RANK>``: position keyboard;
- ``pos_<POSITION_n>``: top heroes for the rank and position;
- ``nav_back_to_positions``: position keyboard again;
- ``hero_<id>``: hero summary and the Items / Skills choice;
- ``nav_back_to_heroes``: the last hero list again;
- ``build_item_<id>`` / ``build_skill_<id>``: item or skill build.

Inconsistent state (a stale button after a restart, an unknown payload) sends
the user back to the rank keyboard with an alert.

Integration
-----------
Driven by :mod:`dota_advisor.ui.app` (Streamlit); any chat transport can call
:meth:`ChatFlow.handle` and render the reply.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final, Optional, Sequence

from dota_advisor.core.exceptions import AdvisorError, NotFoundError
from dota_advisor.core.models import AbilityLevelingSummary, AggregatedHeroStat
from dota_advisor.core.types import HeroId, Position, Rank
from dota_advisor.infra.logging import logger_for
from dota_advisor.services.advisor import AdvisorService
from dota_advisor.ui import texts

__all__: Final[list[str]] = [
    "Button",
    "Reply",
    "ChatState",
    "ChatFlow",
    "chunk",
]

BUTTONS_PER_ROW: Final[int] = 2


@dataclass(frozen=True, slots=True)
class Button:
    label: str
    data: str


@dataclass(slots=True)
class Reply:
    """Message to show: HTML ``text``, keyboard rows and an optional popup alert."""

    text: str
    keyboard: list[list[Button]] = field(default_factory=list)
    alert: Optional[str] = None


@dataclass(slots=True)
class ChatState:
    rank: Optional[Rank] = None
    position: Optional[Position] = None
    heroes: Optional[list[AggregatedHeroStat]] = None
    hero_id: Optional[HeroId] = None


def chunk(buttons: Sequence[Button], size: int = BUTTONS_PER_ROW) -> list[list[Button]]:
    """Split buttons into rows of ``size``."""

    return [list(buttons[i : i + size]) for i in range(0, len(buttons), size)]


class ChatFlow:
    """Per-chat menu state machine over an :class:`AdvisorService`."""

    def __init__(self, service: AdvisorService) -> None:
        self.service = service
        self.catalog = service.catalog
        self._states: dict[str, ChatState] = {}

    def state(self, chat_id: str) -> ChatState:
        return self._states.setdefault(chat_id, ChatState())

    # -------------------------
    # Keyboards
    # -------------------------
    def rank_keyboard(self) -> list[list[Button]]:
        return chunk([Button(r.display_name, f"rank_{r.value}") for r in Rank])

    def position_keyboard(self) -> list[list[Button]]:
        rows = chunk([Button(p.display_name, f"pos_{p.value}") for p in Position])
        rows.append([Button(texts.BTN_HOME, "nav_home")])
        return rows

    def hero_keyboard(self, heroes: Sequence[AggregatedHeroStat]) -> list[list[Button]]:
        rows = chunk([Button(self.catalog.hero_name(h.hero_id), f"hero_{h.hero_id}") for h in heroes])
        rows.append([Button(texts.BTN_BACK, "nav_back_to_positions"), Button(texts.BTN_HOME, "nav_home")])
        return rows

    def build_keyboard(self, hero_id: HeroId) -> list[list[Button]]:
        return [
            [Button(texts.BTN_ITEMS, f"build_item_{hero_id}"), Button(texts.BTN_SKILLS, f"build_skill_{hero_id}")],
            [Button(texts.BTN_BACK, "nav_back_to_heroes"), Button(texts.BTN_HOME, "nav_home")],
        ]

    # -------------------------
    # Dispatch
    # -------------------------
    def handle(self, chat_id: str, data: str) -> Reply:
        """Process one callback payload for ``chat_id`` and return the reply."""

        log = logger_for(component="ui.menus", event="handle")
        state = self.state(chat_id)
        try:
            if data in ("start", "nav_home"):
                return self._home(state)
            if data == "nav_back_to_positions":
                return self._positions(state)
            if data == "nav_back_to_heroes":
                return self._heroes(state)
            if data.startswith("rank_"):
                return self._pick_rank(state, data[len("rank_"):])
            if data.startswith("pos_"):
                return self._pick_position(state, data[len("pos_"):])
            if data.startswith("hero_"):
                return self._pick_hero(state, self._hero_id(data[len("hero_"):]))
            if data.startswith("build_item_"):
                return self._item_build(state, self._hero_id(data[len("build_item_"):]))
            if data.startswith("build_skill_"):
                return self._skill_build(state, self._hero_id(data[len("build_skill_"):]))
        except NotFoundError as exc:
            log.warning("Unknown selection", chat_id=chat_id, data=data, error=str(exc))
            return self._reset(state)
        except AdvisorError as exc:
            log.error("Request failed", chat_id=chat_id, data=data, error=str(exc))
            return self._reset(state, alert="Something went wrong, please try again later.")
        log.warning("Unknown callback", chat_id=chat_id, data=data)
        return self._reset(state)

    @staticmethod
    def _hero_id(raw: str) -> HeroId:
        try:
            return int(raw)
        except ValueError as exc:
            raise NotFoundError(kind="hero", identifier=raw) from exc

    def _reset(self, state: ChatState, alert: str = texts.MSG_STATE_LOST) -> Reply:
        reply = self._home(state)
        reply.alert = alert
        return reply

    # -------------------------
    # Steps
    # -------------------------
    def _home(self, state: ChatState) -> Reply:
        state.rank = state.position = state.heroes = state.hero_id = None
        return Reply(f"<b>{texts.APP_TITLE}</b>\n\n{texts.MSG_CHOOSE_RANK}", self.rank_keyboard())

    def _pick_rank(self, state: ChatState, key: str) -> Reply:
        state.rank = Rank.parse(key)
        state.position = state.heroes = state.hero_id = None
        return self._positions(state)

    def _positions(self, state: ChatState) -> Reply:
        if state.rank is None:
            return self._reset(state)
        return Reply(texts.MSG_CHOOSE_POSITION.format(rank=state.rank.display_name), self.position_keyboard())

    def _pick_position(self, state: ChatState, key: str) -> Reply:
        if state.rank is None:
            return self._reset(state)
        state.position = Position.parse(key)
        state.heroes = self.service.top_heroes(state.rank, state.position)
        state.hero_id = None
        return self._heroes(state)

    def _heroes(self, state: ChatState) -> Reply:
        if state.rank is None or state.position is None or state.heroes is None:
            return self._reset(state)
        if not state.heroes:
            return Reply(texts.format_no_heroes(state.rank, state.position), self.hero_keyboard([]))
        text = texts.format_hero_table(state.heroes, self.catalog, state.rank, state.position)
        return Reply(text, self.hero_keyboard(state.heroes))

    def _pick_hero(self, state: ChatState, hero_id: HeroId) -> Reply:
        if state.rank is None or state.position is None or state.heroes is None:
            return self._reset(state)
        state.hero_id = hero_id
        picked = next((h for h in state.heroes if h.hero_id == hero_id), None)
        text = texts.format_hero_info(
            self.catalog.hero_name(hero_id),
            state.rank,
            state.position,
            picked.win_rate if picked else None,
        )
        return Reply(text, self.build_keyboard(hero_id))

    def _item_build(self, state: ChatState, hero_id: HeroId) -> Reply:
        if state.rank is None or state.position is None:
            return self._reset(state)
        summary = self.service.item_build(hero_id, state.rank, state.position)
        text = texts.format_item_build(summary, self.catalog.hero_name(hero_id), state.rank, state.position)
        return Reply(text, self.build_keyboard(hero_id))

    def _skill_build(self, state: ChatState, hero_id: HeroId) -> Reply:
        if state.position is None:
            return self._reset(state)
        result, from_cache = self.service.skill_build(hero_id, state.position)
        name = self.catalog.hero_name(hero_id)
        if isinstance(result, AbilityLevelingSummary):
            text = texts.format_skill_build(result, self.catalog, name, from_cache=from_cache)
        else:
            text = texts.format_no_skill_data(result, name)
        return Reply(text, self.build_keyboard(hero_id))
