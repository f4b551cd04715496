# -*- coding: utf-8 -*-
"""
plugkit 加载器配置
提供基于 Pydantic 的配置验证机制，支持环境变量解析和多环境配置
"""

import copy
import json
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Type, TypeVar, Union

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from ..exceptions import ConfigurationError

T = TypeVar("T", bound="LoaderConfig")

# 环境变量匹配模式: ${VAR_NAME}
ENV_VAR_PATTERN = re.compile(r"\${([A-Za-z0-9_]+)}")


class LoaderConfig(BaseModel):
    """
    插件加载器配置

    1. **严格模式验证**：禁止额外字段，防止配置错误
    2. **环境变量解析**：自动解析 "${VAR_NAME}" 格式的环境变量
    3. **多环境配置**：根据 APP_ENV 环境变量加载不同环境的配置
    """

    cache_directory: Path = Path(".plugkit-cache")  # 解压缓存根目录
    plugin_directory: Path = Path("plugins")  # 插件归档所在目录
    archive_suffix: str = ".zip"  # 插件归档扩展名
    main_archive_name: str = "plugin.zip"  # 解压目录中的主代码归档
    lib_directory: str = "lib"  # 解压目录中的依赖库目录
    module_suffix: str = ".py"  # 主代码归档中的模块后缀
    manifest_name: str = "plugin_manifest.yaml"  # 解压目录中的清单文件

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    @model_validator(mode="before")
    @classmethod
    def _resolve_env_vars(cls, data: Any) -> Any:
        """
        在其他验证执行前递归解析环境变量

        Raises:
            ValueError: 当环境变量未设置时抛出
        """
        if not isinstance(data, dict):
            return data

        def _resolve(value: Any) -> Any:
            if isinstance(value, str):
                match = ENV_VAR_PATTERN.match(value)
                if not match:
                    return value
                env_var_name = match.group(1)
                env_var_value = os.getenv(env_var_name)
                if env_var_value is None:
                    raise ValueError(f"环境变量 '{env_var_name}' 未设置")
                return env_var_value
            elif isinstance(value, dict):
                return {k: _resolve(v) for k, v in value.items()}
            elif isinstance(value, list):
                return [_resolve(v) for v in value]
            return value

        return _resolve(data)

    @field_validator("archive_suffix", "module_suffix")
    @classmethod
    def _validate_suffix(cls, v: str) -> str:
        if not v.startswith(".") or len(v) < 2:
            raise ValueError(f"扩展名必须以 '.' 开头: {v!r}")
        return v

    @field_validator("main_archive_name", "lib_directory", "manifest_name")
    @classmethod
    def _validate_relative_name(cls, v: str) -> str:
        if not v or "/" in v or "\\" in v or v in (".", ".."):
            raise ValueError(f"必须是解压目录下的单级名称: {v!r}")
        return v

    @classmethod
    def load_from_dict(
        cls: Type[T],
        config_data: Dict[str, Any],
        env: Optional[str] = None,
    ) -> T:
        """
        从字典加载配置，支持环境特定的配置覆盖

        配置结构示例：
        {
            "default": {"cache_directory": "/var/cache/plugkit"},
            "development": {"cache_directory": "./.cache"}
        }

        不含 "default" 键的字典直接作为配置字段使用。

        Args:
            config_data: 配置字典
            env: 目标环境，为 None 时使用 os.getenv("APP_ENV", "development")

        Raises:
            ConfigurationError: 配置无效
        """
        if env is None:
            env = os.getenv("APP_ENV", "development")

        if "default" in config_data:
            merged_config = _deep_merge(
                config_data.get("default") or {}, config_data.get(env) or {}
            )
        else:
            merged_config = config_data

        try:
            return cls(**merged_config)
        except ValidationError as e:
            raise ConfigurationError(f"加载器配置无效: {e}") from e

    @classmethod
    def load_from_file(cls: Type[T], config_path: Union[str, Path], env: Optional[str] = None) -> T:
        """
        从 YAML 或 JSON 文件加载配置

        Raises:
            ConfigurationError: 文件不存在、格式不支持或配置无效
        """
        config_path = Path(config_path)
        if not config_path.is_file():
            raise ConfigurationError(f"配置文件不存在: {config_path}")

        suffix = config_path.suffix.lower()
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                if suffix in (".yaml", ".yml"):
                    data = yaml.safe_load(f) or {}
                elif suffix == ".json":
                    data = json.load(f)
                else:
                    raise ConfigurationError(f"不支持的配置文件格式: {config_path.suffix}")
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"读取配置文件失败 {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"配置文件必须是映射结构: {config_path}")
        return cls.load_from_dict(data, env=env)


def _deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """深度合并两个字典，overrides 中的值会覆盖 base 中的值"""
    result = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and key in result and isinstance(result[key], dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result
