# -*- coding: utf-8 -*-
"""
依赖检查器

根据插件注册表校验插件声明的必需依赖与冲突依赖。
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ...exceptions import DependencyError
from .manifest import Dependency, PluginMetadata
from .registry import PluginsAware
from .version import VersionComparator, VersionRelation


@dataclass
class DependencyProblem:
    """依赖问题：缺失的必需依赖与已存在的冲突依赖"""

    missing_required: List[Dependency] = field(default_factory=list)
    present_conflicting: List[Dependency] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.missing_required or self.present_conflicting)


class DependencyChecker:
    """
    插件依赖检查器

    必需依赖与冲突依赖两轮检查都会完整执行，发现的所有问题在最后以一个
    :class:`DependencyError` 统一报告。
    """

    def __init__(self, version_comparator: Optional[VersionComparator] = None):
        """
        初始化依赖检查器

        Args:
            version_comparator: 版本比较器，默认使用 VersionComparator
        """
        self.version_comparator = version_comparator or VersionComparator()
        self.logger = logging.getLogger(__name__)

    def check(self, plugin_registry: PluginsAware, plugin_metadata: PluginMetadata) -> None:
        """
        检查插件依赖

        Args:
            plugin_registry: 已知插件注册表
            plugin_metadata: 待检查插件的元数据

        Raises:
            DependencyError: 存在缺失的必需依赖或已存在的冲突依赖
        """
        problem = DependencyProblem()

        for required in plugin_metadata.get_required_dependencies():
            candidate = plugin_registry.get_plugin(required.name)
            if candidate is None:
                self.logger.debug(f"缺少依赖: {required}")
                problem.missing_required.append(required)
                continue

            relation = self._compare_versions(required, candidate)
            if not relation.satisfied:
                self.logger.debug(
                    f"依赖版本不匹配: 需要 {required}, 但找到 {candidate.get_version()} ({relation.value})"
                )
                problem.missing_required.append(required)

        for conflicting in plugin_metadata.get_conflicting_dependencies():
            candidate = plugin_registry.get_plugin(conflicting.name)
            if candidate is None:
                continue

            if self._compare_versions(conflicting, candidate).satisfied:
                self.logger.debug(f"存在冲突插件: {conflicting} (版本 {candidate.get_version()})")
                problem.present_conflicting.append(conflicting)

        if problem:
            message = (
                f"依赖问题: {len(problem.missing_required)} 个缺失依赖, "
                f"{len(problem.present_conflicting)} 个冲突依赖"
            )
            self.logger.warning(f"插件 {getattr(plugin_metadata, 'name', plugin_metadata)} {message}")
            raise DependencyError(message, plugin=plugin_metadata, problem=problem)

    def _compare_versions(self, dependency: Dependency, candidate: PluginMetadata) -> VersionRelation:
        return self.version_comparator.compare(dependency.get_version(), candidate.get_version())
