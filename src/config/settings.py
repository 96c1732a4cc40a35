"""
Application settings and configuration

Uses pydantic-settings for type-safe configuration via environment variables.
All settings use WIKIDISTILL_ prefix (e.g., WIKIDISTILL_MAX_NESTING_ITERATIONS=1000).

Settings can also be loaded from a .env file in the project root.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application configuration via environment variables.

    Environment variables use WIKIDISTILL_ prefix.

    Examples:
        WIKIDISTILL_MAX_NESTING_ITERATIONS=10000
        WIKIDISTILL_EXPR_PRECISION=6
        WIKIDISTILL_TABLES_PATH=/etc/wikidistill/lookup.yaml
    """

    model_config = SettingsConfigDict(
        env_prefix="WIKIDISTILL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Marker protection
    marker_prefix: str = Field(
        default="\x00MARKER_",
        description="Prefix for protected-content tokens (uses null byte to avoid collisions)",
    )

    marker_suffix: str = Field(
        default="\x00",
        description="Suffix for protected-content tokens (uses null byte to avoid collisions)",
    )

    # Expansion limits
    max_nesting_iterations: int = Field(
        default=50_000,
        gt=0,
        description="Upper bound on nested-span transforms and rescan passes per document",
    )

    expr_precision: int = Field(
        default=4,
        ge=0,
        le=15,
        description="Decimal places kept when rendering non-integral #expr results",
    )

    # Lookup tables
    tables_path: str | None = Field(
        default=None,
        description="Alternate YAML lookup-table file (defaults to the packaged data/lookup.yaml)",
    )

    debug_mode: bool = Field(
        default=False,
        description="Enable debug output during conversion",
    )

    def markerToken_make(self, index: int) -> str:
        """
        Generate a marker token for the protected region at given index.

        Args:
            index: Zero-based index of the protected region

        Returns:
            Token string (e.g., "\\x00MARKER_0\\x00")

        Example:
            >>> settings = AppSettings()
            >>> settings.markerToken_make(0)
            '\\x00MARKER_0\\x00'
        """
        return f"{self.marker_prefix}{index}{self.marker_suffix}"

    def markerIndex_extract(self, token: str) -> int | None:
        """
        Extract the region index from a marker token.

        Args:
            token: Token string to parse

        Returns:
            Region index if valid token, None otherwise

        Example:
            >>> settings = AppSettings()
            >>> settings.markerIndex_extract('\\x00MARKER_3\\x00')
            3
        """
        if not token.startswith(self.marker_prefix):
            return None
        if not token.endswith(self.marker_suffix):
            return None

        content = token[len(self.marker_prefix) : -len(self.marker_suffix)]

        try:
            return int(content)
        except ValueError:
            return None


# Singleton instance - import this in your code
appsettings = AppSettings()
