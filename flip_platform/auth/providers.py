"""OAuth provider catalogue.

Provider availability is resolved once from settings at startup; the
resulting registry is immutable.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlencode

import structlog

from flip_platform.config import Settings

logger = structlog.get_logger(__name__)


class OAuthProvider(str, Enum):
    """Supported OAuth providers."""

    GOOGLE = "google"
    FACEBOOK = "facebook"
    GITHUB = "github"
    APPLE = "apple"


@dataclass(frozen=True)
class OAuthProviderConfig:
    """Static configuration for one provider."""

    provider: OAuthProvider
    name: str
    scopes: str
    enabled: bool
    env_flag: str
    development_only: bool = False
    production_only: bool = False


OAUTH_PROVIDERS: tuple[OAuthProviderConfig, ...] = (
    OAuthProviderConfig(
        provider=OAuthProvider.GOOGLE,
        name="Google",
        scopes="email profile",
        enabled=True,
        env_flag="supabase_google_enabled",
    ),
    OAuthProviderConfig(
        provider=OAuthProvider.FACEBOOK,
        name="Facebook",
        scopes="email",
        enabled=True,
        env_flag="supabase_facebook_enabled",
    ),
    OAuthProviderConfig(
        provider=OAuthProvider.GITHUB,
        name="GitHub",
        scopes="user:email",
        enabled=False,
        env_flag="supabase_github_enabled",
        development_only=True,
    ),
    OAuthProviderConfig(
        provider=OAuthProvider.APPLE,
        name="Apple",
        scopes="name email",
        enabled=False,
        env_flag="supabase_apple_enabled",
        production_only=True,
    ),
)


@dataclass(frozen=True)
class ProviderConfigReport:
    """Outcome of validating provider configuration."""

    valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


def parse_provider(provider: "OAuthProvider | str") -> OAuthProvider | None:
    """Map a provider name to the enum, or None if unknown."""
    try:
        return OAuthProvider(provider)
    except ValueError:
        return None


@dataclass(frozen=True)
class OAuthProviderRegistry:
    """Resolved provider availability for this process."""

    configs: Mapping[OAuthProvider, OAuthProviderConfig]
    enabled: frozenset[OAuthProvider]
    callback_url: str
    environment: str = "development"

    @classmethod
    def from_settings(cls, settings: Settings) -> "OAuthProviderRegistry":
        """Resolve which providers are usable in this deployment.

        A provider is enabled when its static switch is on, its
        environment flag is set, and its environment restriction holds.
        """
        enabled = set()
        for config in OAUTH_PROVIDERS:
            if not config.enabled:
                continue
            if not getattr(settings, config.env_flag, False):
                continue
            if config.development_only and not settings.is_development:
                continue
            if config.production_only and not settings.is_production:
                continue
            enabled.add(config.provider)

        registry = cls(
            configs={config.provider: config for config in OAUTH_PROVIDERS},
            enabled=frozenset(enabled),
            callback_url=settings.oauth_callback_url,
            environment=settings.environment,
        )
        logger.info(
            "oauth_providers_resolved",
            enabled=sorted(p.value for p in registry.enabled),
        )
        return registry

    def is_enabled(self, provider: OAuthProvider | str) -> bool:
        parsed = parse_provider(provider)
        return parsed is not None and parsed in self.enabled

    def get_config(self, provider: OAuthProvider | str) -> OAuthProviderConfig | None:
        parsed = parse_provider(provider)
        if parsed is None:
            return None
        return self.configs.get(parsed)

    def enabled_providers(self) -> list[OAuthProviderConfig]:
        """Enabled providers in catalogue order."""
        return [c for c in OAUTH_PROVIDERS if c.provider in self.enabled]

    def display_name(self, provider: OAuthProvider | str) -> str:
        config = self.get_config(provider)
        if config is None:
            return str(provider)
        return config.name

    def redirect_url(self, provider: OAuthProvider | str, **params: str) -> str:
        """Callback URL carrying the provider name and extra parameters."""
        parsed = parse_provider(provider)
        name = parsed.value if parsed is not None else str(provider)
        query = urlencode({"provider": name, **params})
        return f"{self.callback_url}?{query}"

    def validate(self) -> ProviderConfigReport:
        """Report configuration problems worth surfacing at startup."""
        errors: list[str] = []
        warnings: list[str] = []

        if not self.enabled:
            warnings.append("No OAuth providers are enabled")

        if self.environment == "production" and self.callback_url.startswith("http://"):
            errors.append("OAuth callback URL must use https in production")

        return ProviderConfigReport(
            valid=not errors,
            errors=tuple(errors),
            warnings=tuple(warnings),
        )
