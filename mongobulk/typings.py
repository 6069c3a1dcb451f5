# Copyright 2024-present MongoDB, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Type aliases used by mongobulk"""
from __future__ import annotations

from typing import Any, Callable, Mapping, MutableMapping, Optional, Sequence, Tuple, Union

# Common Shared Types.
_Address = Tuple[str, Optional[int]]
_DocumentOut = Union[MutableMapping[str, Any], Mapping[str, Any]]
_Pipeline = Sequence[Mapping[str, Any]]
_Hint = Union[str, Mapping[str, Any]]
_Op = Tuple[str, MutableMapping[str, Any]]
_EncodedSize = Callable[[Mapping[str, Any]], int]
