from pathlib import Path
from typing import Any, Self

from pydantic import Field as P_Field
from pydantic.fields import _Unset

from xenforo_sync.models import AliasModel, get_model_fields
from xenforo_sync.utils import yaml


def Field(default: Any, validation_alias: str = _Unset, **kwargs) -> Any:  # noqa: N802
    return P_Field(default=default, validation_alias=validation_alias, **kwargs)


class ConfigModel(AliasModel):
    @classmethod
    def load_file(cls, file: Path) -> Self:
        """Loads the config from `file`, writing any missing option back with its default value"""
        default = cls()
        if not file.is_file():
            config = default
            needs_update = True

        else:
            all_fields = get_model_fields(default, exclude_unset=False)
            config = cls.model_validate(yaml.load(file))
            set_fields = get_model_fields(config)
            needs_update = all_fields != set_fields

        if needs_update:
            yaml.save(file, config)
        return config

    def save_to_file(self, file: Path) -> None:
        yaml.save(file, self)
