from __future__ import annotations

from pathlib import Path
from typing import Annotated

from pydantic import BeforeValidator, StringConstraints

from xenforo_sync.models.validators import falsy_as_list, falsy_as_none

NonEmptyStr = Annotated[str, StringConstraints(min_length=1, strip_whitespace=True)]
PathOrNone = Annotated[Path | None, BeforeValidator(falsy_as_none)]
ListStatusCodes = Annotated[list[Annotated[int, BeforeValidator(int)]], BeforeValidator(falsy_as_list)]
