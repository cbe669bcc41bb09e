import random
from logging import getLevelNamesMapping
from pathlib import Path

import aiohttp
from pydantic import (
    BaseModel,
    NonNegativeFloat,
    NonNegativeInt,
    PositiveFloat,
    PositiveInt,
    field_validator,
    model_validator,
)

from xenforo_sync import constants
from xenforo_sync.config._common import ConfigModel, Field
from xenforo_sync.models.types import ListStatusCodes, NonEmptyStr, PathOrNone
from xenforo_sync.models.validators import falsy_as


def make_timeout(seconds: float) -> aiohttp.ClientTimeout:
    """Bounds connecting and each socket read, never the whole transfer"""
    return aiohttp.ClientTimeout(total=None, sock_connect=seconds, sock_read=seconds)


class HttpSettings(BaseModel):
    timeout: PositiveFloat = constants.DEFAULT_TIMEOUT
    max_retries: NonNegativeInt = constants.DEFAULT_MAX_RETRIES
    retry_delay: NonNegativeFloat = constants.DEFAULT_RETRY_DELAY
    retry_statuses: ListStatusCodes = list(constants.RETRY_STATUSES)
    browser_headers: bool = True

    @field_validator("retry_statuses", mode="after")
    @classmethod
    def unique_list(cls, value: list[int]) -> list[int]:
        return sorted(set(value))

    @property
    def aiohttp_timeout(self) -> aiohttp.ClientTimeout:
        return make_timeout(self.timeout)


class RateLimitSettings(BaseModel):
    requests_per_second: PositiveFloat = constants.REQUESTS_PER_SECOND
    page_delay: NonNegativeFloat = constants.PAGE_DELAY
    download_delay_min: NonNegativeFloat = constants.DOWNLOAD_DELAY_RANGE[0]
    download_delay_max: NonNegativeFloat = constants.DOWNLOAD_DELAY_RANGE[1]
    rate_limit_default_wait: NonNegativeFloat = constants.RATE_LIMIT_DEFAULT_WAIT

    @model_validator(mode="after")
    def check_download_delay(self):
        if self.download_delay_max < self.download_delay_min:
            raise ValueError("download_delay_max must be greater than or equal to download_delay_min")
        return self

    @property
    def download_delay(self) -> NonNegativeFloat:
        """A random number in the range [download_delay_min, download_delay_max]"""
        return random.uniform(self.download_delay_min, self.download_delay_max)


class DownloadSettings(BaseModel):
    folder: Path = constants.DEFAULT_DOWNLOAD_FOLDER
    chunk_size: PositiveInt = constants.DOWNLOAD_CHUNK_SIZE
    download_thumbnails: bool = True


class DatabaseSettings(BaseModel):
    path: Path = constants.DEFAULT_DATABASE_FILE


class LoginSettings(BaseModel):
    adapter: NonEmptyStr = "xamvn-clone"
    cookie_file: PathOrNone = None


class LoggingSettings(BaseModel):
    level: int = 20
    file: PathOrNone = None

    @field_validator("level", mode="before")
    @classmethod
    def parse_level(cls, value: int | str) -> int | str:
        if isinstance(value, str) and not value.isdigit():
            return getLevelNamesMapping().get(value.strip().upper(), value)
        return falsy_as(value, 20)


class Settings(ConfigModel):
    http: HttpSettings = Field(HttpSettings(), "HTTP")
    rate_limiting: RateLimitSettings = Field(RateLimitSettings(), "Rate_Limiting")
    downloads: DownloadSettings = Field(DownloadSettings(), "Downloads")
    database: DatabaseSettings = Field(DatabaseSettings(), "Database")
    login: LoginSettings = Field(LoginSettings(), "Login")
    logging: LoggingSettings = Field(LoggingSettings(), "Logging")
