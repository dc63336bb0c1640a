"""Configuration models for browser action runner."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONSENT_SELECTORS: list[str] = [
    'button[aria-label*="Accept"]',
    'button[aria-label*="Cookie"]',
    'button:has-text("Accept")',
    'button:has-text("Accept All")',
    'button:has-text("I Agree")',
    'button:has-text("I Accept")',
    'button:has-text("Allow")',
    'button:has-text("Close")',
    'button:has-text("Got it")',
    ".cookie-consent button",
    "#consent button",
    "#consent-popup button",
    ".consent-banner button",
]


class TaskConfig(BaseModel):
    """Instruction handed to the planner."""

    description: str


class BrowserConfig(BaseModel):
    """Settings for launching the browser session."""

    headless: bool = False
    channel: Optional[str] = None
    viewport_width: int = 1280
    viewport_height: int = 720
    device_scale_factor: float = 1.0
    accept_downloads: bool = True
    launch_args: list[str] = Field(
        default_factory=lambda: [
            "--no-sandbox",
            "--disable-dev-shm-usage",
            "--start-maximized",
        ]
    )


class ExecutorConfig(BaseModel):
    """Retry behaviour shared by every single-session operation."""

    max_retries: int = Field(default=1, ge=0)
    retry_delay_seconds: float = Field(default=1.0, ge=0)
    load_state: str = Field(default="domcontentloaded")
    timeout_grace_seconds: Optional[float] = Field(
        default=5.0,
        description="Extra time allowed on top of an action timeout before it is abandoned.",
    )


class NavigationConfig(BaseModel):
    """Settings for robust URL navigation."""

    max_retries: int = Field(default=3, ge=0)
    backoff_base_ms: int = Field(default=5000, ge=0)
    dom_content_timeout_ms: int = Field(default=60000, ge=0)
    suppress_popups: bool = True


class PopupConfig(BaseModel):
    """Settings for dialog and consent banner suppression."""

    enabled: bool = True
    dismiss_dialogs: bool = True
    click_timeout_ms: int = Field(default=2000, ge=0)
    selectors: list[str] = Field(default_factory=lambda: list(DEFAULT_CONSENT_SELECTORS))


class RecoveryConfig(BaseModel):
    """Classification of tool failures that terminate the process."""

    fatal_keywords: list[str] = Field(default_factory=lambda: ["critical", "timeout"])
    exit_code: int = 1


class EventsConfig(BaseModel):
    """Where runner events are delivered."""

    channel: str = Field(default="console")


class PlannerConfig(BaseModel):
    """Settings for the planner producing actions."""

    provider: str = Field(default="scripted")
    steps: list[dict[str, Any]] = Field(default_factory=list)


class RunnerConfig(BaseSettings):
    """Top-level configuration for running the action runner."""

    model_config = SettingsConfigDict(
        env_prefix="BROWSER_ACTION_RUNNER_",
        env_file=(".env",),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    task: TaskConfig
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    executor: ExecutorConfig = Field(default_factory=ExecutorConfig)
    navigation: NavigationConfig = Field(default_factory=NavigationConfig)
    popups: PopupConfig = Field(default_factory=PopupConfig)
    recovery: RecoveryConfig = Field(default_factory=RecoveryConfig)
    events: EventsConfig = Field(default_factory=EventsConfig)
    planner: PlannerConfig = Field(default_factory=PlannerConfig)
    max_steps: int = Field(default=50, ge=1)


def load_config(
    path: Path | None = None,
    *,
    env_file: Path | None = None,
    **overrides: object,
) -> RunnerConfig:
    """Load configuration from an optional file and overrides."""

    data: dict[str, Any] = {}
    if path:
        import yaml

        data = yaml.safe_load(path.read_text()) or {}
    if overrides:
        _deep_update(data, overrides)
    settings_kwargs: dict[str, object] = {}
    if env_file is not None:
        settings_kwargs["_env_file"] = env_file
    config = RunnerConfig(**data, **settings_kwargs)
    if not data:
        return config

    merged = config.model_dump(mode="python")
    _deep_update(merged, data)
    return RunnerConfig.model_validate(merged)


def _deep_update(target: dict[str, Any], updates: Mapping[str, Any]) -> None:
    """Recursively merge ``updates`` into ``target`` in-place."""

    for key, value in updates.items():
        if (
            isinstance(value, Mapping)
            and isinstance(existing := target.get(key), Mapping)
        ):
            nested: dict[str, Any]
            if isinstance(existing, dict):
                nested = existing
            else:
                nested = dict(existing)
            _deep_update(nested, value)
            target[key] = nested
        else:
            target[key] = value
