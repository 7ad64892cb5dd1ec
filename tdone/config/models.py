from pathlib import Path
from typing import List, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


def _normalize_extensions(values: List[str]) -> List[str]:
    return [(ext if ext.startswith(".") else f".{ext}").lower() for ext in values]


class PathsConfig(BaseModel):
    default_home: Optional[str] = None


class PlexConfig(BaseModel):
    # tokens and hosts written unquoted in YAML can come back as numbers
    model_config = ConfigDict(coerce_numbers_to_str=True)

    server: str = ""
    token: str = ""
    media_path: str = ""

    @field_validator("server")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.strip().rstrip("/")


class LoggingConfig(BaseModel):
    file: str = ".local/state/transmission-processing.log"
    max_size: int = Field(default=10485760, ge=0)  # 10MB, 0 disables rotation
    debug: bool = False


class ProcessingConfig(BaseModel):
    stability_seconds: float = Field(default=10.0, ge=0.0)
    check_open_files: bool = True
    writer_process: str = "transmission"
    media_extensions: List[str] = Field(default_factory=lambda: [".mkv", ".mp4", ".avi", ".m4v"])
    junk_extensions: List[str] = Field(default_factory=lambda: [".nfo", ".exe", ".txt"])
    min_free_space_mb: int = Field(default=1000, ge=0)
    preview: bool = False
    filebot_path: Optional[str] = None
    engine_timeout: Optional[float] = Field(default=None, gt=0)
    naming_format: str = "{plex}"
    conflict: str = "auto"
    apply: List[str] = Field(default_factory=lambda: [
        "artwork", "url", "metadata", "import", "subtitles", "finder",
        "date", "chmod", "prune", "clean", "thumbnail",
    ])
    tv_sources: List[str] = Field(default_factory=lambda: ["TheTVDB", "TheMovieDB::TV", "AniDB"])
    movie_sources: List[str] = Field(default_factory=lambda: ["TheMovieDB", "OMDb"])

    @field_validator("media_extensions", "junk_extensions")
    @classmethod
    def validate_extensions(cls, v: List[str]) -> List[str]:
        return _normalize_extensions(v)

    @field_validator("conflict")
    @classmethod
    def validate_conflict(cls, v: str) -> str:
        allowed = {"skip", "override", "auto", "index", "fail"}
        if v not in allowed:
            raise ValueError(f"Unsupported conflict policy: {v}. Use one of {sorted(allowed)}")
        return v


class RescanConfig(BaseModel):
    attempts: int = Field(default=3, ge=1)
    delay_seconds: float = Field(default=5.0, ge=0.0)
    timeout_seconds: float = Field(default=10.0, gt=0.0)
    sections: Dict[str, int] = Field(default_factory=lambda: {"show": 2, "movie": 1})


class AppConfig(BaseModel):
    version: Optional[str] = None
    paths: PathsConfig = Field(default_factory=PathsConfig)
    plex: PlexConfig = Field(default_factory=PlexConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)
    rescan: RescanConfig = Field(default_factory=RescanConfig)

    def missing_required(self) -> List[str]:
        """Names of required settings that are empty."""
        missing = []
        if not self.plex.server:
            missing.append("plex.server")
        if not self.plex.token:
            missing.append("plex.token")
        if not self.plex.media_path:
            missing.append("plex.media_path")
        return missing

    @property
    def media_root(self) -> Path:
        return Path(self.plex.media_path).expanduser()

    def effective_home(self, home: Optional[str] = None) -> Path:
        """$HOME when it points at a real directory, else paths.default_home."""
        if home and Path(home).is_dir():
            return Path(home)
        if self.paths.default_home:
            return Path(self.paths.default_home).expanduser()
        return Path.home()

    def log_file(self, home: Optional[str] = None) -> Path:
        log_path = Path(self.logging.file).expanduser()
        if log_path.is_absolute():
            return log_path
        return self.effective_home(home) / log_path
