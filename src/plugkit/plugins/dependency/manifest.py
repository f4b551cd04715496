# -*- coding: utf-8 -*-
"""
插件清单模型

定义依赖项、插件元数据以及插件清单文件的加载与校验。
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ...exceptions import ManifestError

DEPENDENCY_VERSION_SEPARATOR = "="


@dataclass(frozen=True, eq=False)
class Dependency:
    """
    插件依赖

    依赖的身份只由名称决定：指向同一插件的两条依赖记录视为同一依赖，
    与各自要求的版本无关。
    """

    name: str
    version: Optional[str] = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dependency):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)

    def get_name(self) -> str:
        return self.name

    def get_version(self) -> Optional[str]:
        return self.version

    @classmethod
    def parse(cls, value: str) -> "Dependency":
        """
        从清单写法解析依赖

        ``"name"`` 表示不限版本，``"name=range"`` 带版本要求。

        Raises:
            ValueError: 依赖名称为空
        """
        name, _, required = value.partition(DEPENDENCY_VERSION_SEPARATOR)
        name, required = name.strip(), required.strip()
        if not name:
            raise ValueError(f"依赖名称不能为空: {value!r}")
        return cls(name, required or None)

    def __str__(self) -> str:
        if self.version:
            return f"{self.name}{DEPENDENCY_VERSION_SEPARATOR}{self.version}"
        return self.name


@dataclass
class PluginMetadata:
    """插件元数据"""

    name: str
    version: Optional[str] = None
    description: str = ""
    required_dependencies: List[Dependency] = field(default_factory=list)
    conflicting_dependencies: List[Dependency] = field(default_factory=list)

    def get_name(self) -> str:
        return self.name

    def get_version(self) -> Optional[str]:
        return self.version

    def get_required_dependencies(self) -> List[Dependency]:
        return list(self.required_dependencies)

    def get_conflicting_dependencies(self) -> List[Dependency]:
        return list(self.conflicting_dependencies)


class PluginManifest(BaseModel):
    """
    插件清单模型

    对应插件归档中的清单文件，依赖与冲突都使用 ``"name"`` 或 ``"name=range"`` 写法。
    """

    name: str = Field(..., min_length=1, description="插件唯一名称")
    version: Optional[str] = Field(default=None, description="插件版本")
    description: str = Field(default="", description="插件描述")
    depends: List[str] = Field(default_factory=list, description="必需依赖")
    conflicts: List[str] = Field(default_factory=list, description="冲突依赖")

    model_config = ConfigDict(extra="ignore")

    @field_validator("version", mode="before")
    @classmethod
    def validate_version(cls, v):
        """允许 YAML 中写成数字的版本号"""
        if v is None:
            return v
        return str(v)

    @field_validator("depends", "conflicts")
    @classmethod
    def validate_dependencies(cls, v):
        """验证依赖写法"""
        for item in v:
            Dependency.parse(item)
        return v

    def to_metadata(self) -> PluginMetadata:
        """转换为插件元数据"""
        return PluginMetadata(
            name=self.name,
            version=self.version,
            description=self.description,
            required_dependencies=[Dependency.parse(item) for item in self.depends],
            conflicting_dependencies=[Dependency.parse(item) for item in self.conflicts],
        )


class ManifestValidator:
    """
    插件清单加载器

    提供插件清单的读取与校验功能。
    """

    @staticmethod
    def load_from_dict(data: Any, source: str = "<dict>") -> PluginManifest:
        """从字典创建插件清单"""
        if not isinstance(data, dict):
            raise ManifestError(f"插件清单必须是映射结构: {source}")
        try:
            return PluginManifest(**data)
        except ValidationError as e:
            raise ManifestError(f"插件清单校验失败 {source}: {e}") from e

    @staticmethod
    def load_from_file(manifest_path: Path) -> PluginManifest:
        """从文件加载插件清单"""
        manifest_path = Path(manifest_path)
        if not manifest_path.is_file():
            raise ManifestError(f"插件清单文件不存在: {manifest_path}")

        suffix = manifest_path.suffix.lower()
        try:
            with open(manifest_path, "r", encoding="utf-8") as f:
                if suffix in (".yaml", ".yml"):
                    data = yaml.safe_load(f)
                elif suffix == ".json":
                    data = json.load(f)
                else:
                    raise ManifestError(f"不支持的清单文件格式: {manifest_path.suffix}")
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise ManifestError(f"读取插件清单失败 {manifest_path}: {e}") from e

        return ManifestValidator.load_from_dict(data, str(manifest_path))
