"""Application configuration using Pydantic Settings."""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ALLOWED_COMMANDS = [
    "npm",
    "yarn",
    "pnpm",
    "bun",
    "node",
    "python",
    "python3",
    "pip",
    "pip3",
    "git",
    "grep",
    "find",
    "ls",
    "cat",
    "head",
    "tail",
    "echo",
    "jest",
    "mocha",
    "vitest",
    "cypress",
    "eslint",
    "prettier",
    "tsc",
    "babel",
    "docker",
    "docker-compose",
    "curl",
    "wget",
]

DEFAULT_DANGEROUS_COMMANDS = [
    "rm",
    "rmdir",
    "del",
    "erase",
    "format",
    "fdisk",
    "mkfs",
    "sudo",
    "su",
    "chmod",
    "chown",
    "kill",
    "killall",
    "pkill",
    "reboot",
    "shutdown",
    "halt",
    "dd",
    "mount",
    "umount",
]

DEFAULT_FILE_EXTENSIONS = [
    ".ts", ".js", ".tsx", ".jsx", ".py", ".java", ".cpp", ".c", ".h",
    ".php", ".rb", ".go", ".rs", ".swift", ".kt", ".scala", ".clj",
    ".cs", ".fs", ".vb", ".dart", ".lua", ".pl", ".pm", ".tcl",
    ".json", ".xml", ".yaml", ".yml", ".toml", ".ini", ".cfg",
    ".md", ".txt", ".html", ".css", ".scss", ".sass", ".less",
    ".sql", ".sh", ".bash", ".zsh", ".fish", ".ps1", ".bat",
]  # fmt: skip


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DEVRELAY_MCP_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Server settings
    host: str = "127.0.0.1"
    port: int = 5680
    debug: bool = False
    log_level: str = "INFO"

    # Sandbox
    workspace_dir: Path = Field(default_factory=Path.cwd)
    allow_file_patches: bool = False
    allow_command_execution: bool = False
    allowed_commands: list[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_COMMANDS))
    dangerous_commands: list[str] = Field(
        default_factory=lambda: list(DEFAULT_DANGEROUS_COMMANDS)
    )
    allowed_file_extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_FILE_EXTENSIONS)
    )

    # Limits
    default_timeout_ms: int = Field(default=30_000, ge=100)
    test_timeout_ms: int = Field(default=180_000, ge=100)
    lint_timeout_ms: int = Field(default=60_000, ge=100)
    max_output_bytes: int = Field(default=1024 * 1024, ge=1024)  # 1MB
    max_file_size_bytes: int = Field(default=10 * 1024 * 1024, ge=1024)  # 10MB

    # Registries
    max_sessions: int = Field(default=10, ge=1, le=100)
    log_retention: int = Field(default=10_000, ge=1)
    report_retention: int = Field(default=200, ge=1)

    # Process lifecycle
    session_startup_timeout_seconds: float = Field(default=10.0, gt=0)
    session_ready_delay_seconds: float = Field(default=2.0, ge=0)
    close_grace_seconds: float = Field(default=5.0, ge=0)
    kill_delay_seconds: float = Field(default=5.0, ge=0)
    step_delay_seconds: float = Field(default=0.1, ge=0)

    @field_validator("workspace_dir")
    @classmethod
    def resolve_workspace(cls, v: Path) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("allowed_file_extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]

    @property
    def default_timeout_seconds(self) -> float:
        """Default command timeout in seconds."""
        return self.default_timeout_ms / 1000


# Global settings instance
settings = Settings()
