"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import Dict, Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.schedule import DEFAULT_TIMEZONE, AvailabilityConfig, WorkingHoursConfig
from .services.autofill import DEFAULT_FAN_OUT
from .services.waitlist import DEFAULT_EXPIRY_DAYS


class WaitlistSettings(BaseModel):
    """Waitlist storage and expiry."""
    expiry_days: int = DEFAULT_EXPIRY_DAYS
    store_path: Path = Path("waitlist.json")

    @field_validator("expiry_days")
    @classmethod
    def validate_expiry(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("expiry_days must be greater than zero")
        return value


class AutoFillSettings(BaseModel):
    """How freed slots are offered to the waitlist."""
    fan_out: int = DEFAULT_FAN_OUT
    webhook_url: Optional[str] = None
    timeout_seconds: float = 10.0

    @field_validator("fan_out")
    @classmethod
    def validate_fan_out(cls, value: int) -> int:
        """Ensure at least one candidate is notified."""
        if value <= 0:
            raise ValueError("fan_out must be greater than zero")
        return value

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout_seconds must be greater than zero")
        return value


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = DEFAULT_TIMEZONE
    working_hours: Optional[WorkingHoursConfig] = None
    providers: Dict[str, WorkingHoursConfig] = Field(default_factory=dict)
    appointment_duration_minutes: int = 30
    buffer_minutes: int = 15
    waitlist: WaitlistSettings = Field(default_factory=WaitlistSettings)
    autofill: AutoFillSettings = Field(default_factory=AutoFillSettings)

    @model_validator(mode="before")
    @classmethod
    def apply_clinic_timezone(cls, data):
        """Working hours without their own timezone use the clinic timezone."""
        if not isinstance(data, dict):
            return data

        timezone = data.get("timezone", DEFAULT_TIMEZONE)

        def with_timezone(hours):
            if isinstance(hours, dict):
                return {"timezone": timezone, **hours}
            return hours

        data = dict(data)
        if "working_hours" in data:
            data["working_hours"] = with_timezone(data["working_hours"])
        if isinstance(data.get("providers"), dict):
            data["providers"] = {
                provider_id: with_timezone(hours)
                for provider_id, hours in data["providers"].items()
            }
        return data

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("appointment_duration_minutes")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        """Ensure appointment duration is positive."""
        if value <= 0:
            raise ValueError("appointment_duration_minutes must be greater than zero")
        return value

    @field_validator("buffer_minutes")
    @classmethod
    def validate_buffer(cls, value: int) -> int:
        if value < 0:
            raise ValueError("buffer_minutes must not be negative")
        return value

    def default_working_hours(self) -> WorkingHoursConfig:
        """Clinic-wide hours, in the configured timezone."""
        if self.working_hours is None:
            return WorkingHoursConfig(timezone=self.timezone)
        return self.working_hours

    def working_hours_for(self, provider_id: Optional[str]) -> WorkingHoursConfig:
        """Provider-specific hours, falling back to the clinic default."""
        if provider_id is not None and provider_id in self.providers:
            return self.providers[provider_id]
        return self.default_working_hours()

    def availability_for(
        self,
        provider_id: str,
        duration_minutes: Optional[int] = None,
    ) -> AvailabilityConfig:
        """Build the availability configuration of one provider."""
        return AvailabilityConfig(
            provider_id=provider_id,
            working_hours=self.working_hours_for(provider_id),
            appointment_duration_minutes=(
                duration_minutes if duration_minutes is not None else self.appointment_duration_minutes
            ),
            buffer_minutes=self.buffer_minutes,
        )

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
