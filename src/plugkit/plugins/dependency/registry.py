# -*- coding: utf-8 -*-
"""
插件注册表

提供已知插件元数据的注册与查询功能。依赖检查器只通过
:class:`PluginsAware` 协议读取注册表。
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Protocol, runtime_checkable

from ...exceptions import PluginNotFoundError
from .manifest import PluginMetadata


@runtime_checkable
class PluginsAware(Protocol):
    """可按名称查询插件元数据的注册表"""

    def get_plugin(self, name: str) -> Optional[PluginMetadata]:
        ...


class PluginRegistry:
    """
    内存插件注册表

    按插件名称保存元数据，同名插件重复注册时替换旧版本。
    """

    def __init__(self):
        """初始化插件注册表"""
        self.logger = logging.getLogger(__name__)

        self._plugins: Dict[str, PluginMetadata] = {}
        self._plugin_paths: Dict[str, Path] = {}

    def register(self, metadata: PluginMetadata, plugin_path: Optional[Path] = None) -> None:
        """
        注册插件

        Args:
            metadata: 插件元数据
            plugin_path: 插件路径
        """
        existing = self._plugins.get(metadata.name)
        if existing is not None:
            self.logger.warning(
                f"插件 {metadata.name} 已存在 (版本: {existing.version}), "
                f"将被替换为新版本 {metadata.version}"
            )

        self._plugins[metadata.name] = metadata
        if plugin_path is not None:
            self._plugin_paths[metadata.name] = Path(plugin_path)
        else:
            self._plugin_paths.pop(metadata.name, None)

        self.logger.info(f"插件 {metadata.name} v{metadata.version} 注册成功")

    def unregister(self, plugin_name: str) -> bool:
        """
        注销插件

        Returns:
            注销是否成功
        """
        if plugin_name not in self._plugins:
            self.logger.warning(f"尝试注销不存在的插件: {plugin_name}")
            return False

        del self._plugins[plugin_name]
        self._plugin_paths.pop(plugin_name, None)
        self.logger.info(f"插件 {plugin_name} 注销成功")
        return True

    def get_plugin(self, name: str) -> Optional[PluginMetadata]:
        """获取插件元数据"""
        return self._plugins.get(name)

    def require_plugin(self, name: str) -> PluginMetadata:
        """获取插件元数据，不存在时抛出 PluginNotFoundError"""
        metadata = self._plugins.get(name)
        if metadata is None:
            raise PluginNotFoundError(f"插件不存在: {name}")
        return metadata

    def has_plugin(self, name: str) -> bool:
        """检查插件是否存在"""
        return name in self._plugins

    def get_plugin_path(self, name: str) -> Optional[Path]:
        """获取插件路径"""
        return self._plugin_paths.get(name)

    def list_plugins(self) -> List[str]:
        """按注册顺序列出插件名称"""
        return list(self._plugins)

    def clear(self) -> None:
        """清空注册表"""
        self._plugins.clear()
        self._plugin_paths.clear()
        self.logger.info("注册表已清空")

    def __contains__(self, name: object) -> bool:
        return name in self._plugins

    def __len__(self) -> int:
        return len(self._plugins)
