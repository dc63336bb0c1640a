"""Factories for constructing components from configuration."""

from __future__ import annotations

from typing import Optional

from .browser.base import BrowserLauncher, SessionHandle
from .browser.playwright_launcher import PlaywrightLauncher
from .browser.popups import PopupSuppressor
from .browser.session_store import LaunchHook, SessionStore
from .config import EventsConfig, PlannerConfig, PopupConfig, RunnerConfig
from .events.base import (
    CompositeEventSink,
    ConsoleEventSink,
    EventSink,
    LoggingEventSink,
    NullEventSink,
)
from .executor.action_executor import ActionExecutor
from .executor.actions import ActionDispatcher
from .executor.navigation import NavigationController
from .orchestrator.recovery import FailureRecoveryHandler
from .planner.base import Planner
from .planner.scripted import ScriptedPlanner


def build_planner(config: PlannerConfig) -> Planner:
    provider = config.provider.lower()
    if provider == "scripted":
        return ScriptedPlanner.from_steps(config.steps)
    raise ValueError(f"Unsupported planner provider: {config.provider}")


def build_event_sink(config: EventsConfig) -> EventSink:
    channel = config.channel.lower()
    if channel == "console":
        return CompositeEventSink([ConsoleEventSink(), LoggingEventSink()])
    if channel == "logging":
        return LoggingEventSink()
    if channel == "none":
        return NullEventSink()
    raise ValueError(f"Unsupported event channel: {config.channel}")


def build_popup_suppressor(config: PopupConfig) -> PopupSuppressor:
    return PopupSuppressor(config)


def build_session_store(
    config: RunnerConfig,
    events: EventSink,
    popups: Optional[PopupSuppressor] = None,
    launcher: Optional[BrowserLauncher] = None,
) -> SessionStore:
    on_launch: Optional[LaunchHook] = None
    if popups is not None and config.popups.enabled and config.popups.dismiss_dialogs:

        async def _attach_dialog_handler(handle: SessionHandle) -> None:
            popups.attach(handle.page)

        on_launch = _attach_dialog_handler

    return SessionStore(
        launcher or PlaywrightLauncher(config.browser),
        events=events,
        on_launch=on_launch,
    )


def build_dispatcher(
    config: RunnerConfig,
    store: SessionStore,
    events: EventSink,
    popups: Optional[PopupSuppressor] = None,
) -> ActionDispatcher:
    executor = ActionExecutor(store, config.executor, events=events)
    navigation = NavigationController(executor, config.navigation, popups=popups)
    return ActionDispatcher(executor, navigation, config.executor)


def build_recovery(
    config: RunnerConfig,
    store: SessionStore,
    events: EventSink,
) -> FailureRecoveryHandler:
    return FailureRecoveryHandler(store, config.recovery, events=events)
