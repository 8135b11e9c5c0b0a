
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from typing import Optional
import logging, yaml, pathlib, typer

APP_NAME = "amcpkit"
log = logging.getLogger(__name__)

class ServerConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    host: str = Field("localhost", description="AMCP server IP/hostname")
    port: int = Field(5250, description="AMCP TCP port")
    timeout_s: float = Field(5.0, gt=0, description="Per-command reply timeout")

class TestPatternConfig(BaseModel):
    server_url: str = Field("http://localhost:8080", description="Static server hosting key-fill-identifier.html")
    fill_layer: int = Field(20)
    key_layer: int = Field(19)

class AppConfig(BaseModel):
    server: ServerConfig = Field(default_factory=ServerConfig)
    test_pattern: TestPatternConfig = Field(default_factory=TestPatternConfig)
    channels: int = Field(1, ge=1, description="Number of playout channels on the server")

def load_config(path: str) -> AppConfig:
    data = yaml.safe_load(pathlib.Path(path).read_text()) or {}
    return AppConfig.model_validate(data)

# ---------- persisted settings ----------
class Settings(BaseModel):
    last_host: str = "localhost"
    last_port: int = 5250
    last_profile: Optional[str] = None
    caspar_path: Optional[str] = None

class SettingsStore:
    """Load at startup, save on every change. Pass the store around; there is no global instance."""

    def __init__(self, path: Optional[pathlib.Path] = None):
        self.path = pathlib.Path(path) if path else pathlib.Path(typer.get_app_dir(APP_NAME)) / "settings.yaml"

    def load(self) -> Settings:
        """Defaults when the file is missing or unreadable."""
        try:
            data = yaml.safe_load(self.path.read_text()) or {}
            return Settings.model_validate(data)
        except FileNotFoundError:
            return Settings()
        except (OSError, yaml.YAMLError, ValidationError) as e:
            log.warning("Ignoring unreadable settings file %s: %s", self.path, e)
            return Settings()

    def save(self, settings: Settings) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(yaml.safe_dump(settings.model_dump(), sort_keys=False))

    def remember_connection(self, host: str, port: int) -> Settings:
        settings = self.load()
        if (settings.last_host, settings.last_port) != (host, port):
            settings = settings.model_copy(update={"last_host": host, "last_port": port})
            self.save(settings)
        return settings
