# -*- coding: utf-8 -*-
"""
插件依赖管理系统

提供依赖模型、插件清单、注册表、版本范围比较与依赖检查功能。
"""

from .checker import DependencyChecker, DependencyProblem
from .manifest import Dependency, ManifestValidator, PluginManifest, PluginMetadata
from .registry import PluginRegistry, PluginsAware
from .version import VersionComparator, VersionRange, VersionRelation

__all__ = [
    "Dependency",
    "PluginMetadata",
    "PluginManifest",
    "ManifestValidator",
    "PluginRegistry",
    "PluginsAware",
    "VersionRange",
    "VersionRelation",
    "VersionComparator",
    "DependencyChecker",
    "DependencyProblem",
]
