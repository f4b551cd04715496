# -*- coding: utf-8 -*-
"""
依赖检查器测试
"""

import logging
from unittest.mock import MagicMock

import pytest

from plugkit.exceptions import DependencyError, PluginError
from plugkit.plugins.dependency.checker import DependencyChecker, DependencyProblem
from plugkit.plugins.dependency.manifest import Dependency, PluginMetadata
from plugkit.plugins.dependency.registry import PluginRegistry
from plugkit.plugins.dependency.version import VersionComparator, VersionRelation


def metadata(name, version=None, requires=(), conflicts=()):
    return PluginMetadata(
        name=name,
        version=version,
        required_dependencies=[Dependency.parse(item) for item in requires],
        conflicting_dependencies=[Dependency.parse(item) for item in conflicts],
    )


class TestDependencyChecker:
    """测试必需依赖与冲突依赖检查"""

    @pytest.fixture
    def registry(self):
        registry = PluginRegistry()
        registry.register(metadata("a", "2.0"))
        registry.register(metadata("b", "1.5.0"))
        registry.register(metadata("unversioned"))
        return registry

    @pytest.fixture
    def checker(self):
        return DependencyChecker()

    def test_exact_dependency_satisfied(self, checker, registry):
        """测试要求版本与实际版本相同"""
        checker.check(registry, metadata("p", requires=["a=2.0"]))

    def test_unversioned_dependency_satisfied(self, checker, registry):
        """测试不限版本的依赖"""
        checker.check(registry, metadata("p", requires=["a", "unversioned"]))

    def test_range_dependency_satisfied(self, checker, registry):
        """测试版本范围依赖"""
        checker.check(registry, metadata("p", requires=["a=[1.0,3.0)", "b=>=1.5"]))

    def test_no_dependencies(self, checker):
        """测试没有任何依赖时对空注册表也通过"""
        checker.check(PluginRegistry(), metadata("p"))

    def test_missing_dependency_reported_exactly(self, checker, registry):
        """测试缺失的依赖被准确列出"""
        plugin = metadata("p", requires=["a=2.0", "missing"])

        with pytest.raises(DependencyError) as exc_info:
            checker.check(registry, plugin)

        error = exc_info.value
        assert error.missing_required == (Dependency("missing"),)
        assert error.present_conflicting == ()
        assert error.plugin is plugin

    @pytest.mark.parametrize(
        "requirement",
        [
            "a=2.1",  # LESS_THAN
            "a=1.9",  # GREATER_THAN
            "a=[3.0,)",  # NOT_IN_RANGE
            "unversioned=1.0",  # NOT_EQUAL
        ],
    )
    def test_unsatisfied_relations_count_as_missing(self, checker, registry, requirement):
        """测试除 EQUAL 与 IN_RANGE 以外的关系都视为缺失"""
        with pytest.raises(DependencyError) as exc_info:
            checker.check(registry, metadata("p", requires=[requirement]))

        assert [d.name for d in exc_info.value.missing_required] == [requirement.split("=")[0]]

    def test_conflict_present(self, checker, registry):
        """测试冲突插件存在"""
        with pytest.raises(DependencyError) as exc_info:
            checker.check(registry, metadata("p", conflicts=["b"]))

        assert exc_info.value.present_conflicting == (Dependency("b"),)
        assert exc_info.value.missing_required == ()

    def test_conflict_absent_or_out_of_range(self, checker, registry):
        """测试冲突插件不存在或版本不在冲突范围内"""
        checker.check(registry, metadata("p", conflicts=["nowhere", "b=[2.0,)", "a=1.0"]))

    def test_all_problems_reported_together(self, checker, registry):
        """测试两轮检查全部完成后一次性报告"""
        plugin = metadata(
            "p",
            requires=["x", "a=[3.0,)", "y"],
            conflicts=["b=(,2.0)", "a"],
        )

        with pytest.raises(DependencyError) as exc_info:
            checker.check(registry, plugin)

        error = exc_info.value
        assert [d.name for d in error.missing_required] == ["x", "a", "y"]
        assert [d.name for d in error.present_conflicting] == ["b", "a"]
        assert "3 个缺失依赖" in str(error)
        assert "2 个冲突依赖" in str(error)
        assert isinstance(error, PluginError)

    def test_failure_logged_as_warning(self, checker, registry, caplog):
        """测试检查失败时记录警告日志"""
        with caplog.at_level(logging.WARNING, logger="plugkit.plugins.dependency.checker"):
            with pytest.raises(DependencyError):
                checker.check(registry, metadata("p", requires=["missing"]))

        assert any("p" in record.getMessage() for record in caplog.records)

    def test_registry_is_only_queried_by_name(self, checker):
        """测试检查器只通过 get_plugin 读取注册表"""
        registry = MagicMock(spec=["get_plugin"])
        registry.get_plugin.return_value = metadata("a", "2.0")

        checker.check(registry, metadata("p", requires=["a=2.0"]))

        registry.get_plugin.assert_called_once_with("a")

    def test_metadata_with_minimal_interface(self, checker, registry, caplog):
        """测试只提供依赖列表与版本访问器的元数据对象"""

        class BareMetadata:
            def get_required_dependencies(self):
                return [Dependency("missing")]

            def get_conflicting_dependencies(self):
                return []

            def get_version(self):
                return "1.0"

        plugin = BareMetadata()

        with caplog.at_level(logging.WARNING, logger="plugkit.plugins.dependency.checker"):
            with pytest.raises(DependencyError) as exc_info:
                checker.check(registry, plugin)

        assert exc_info.value.missing_required == (Dependency("missing"),)
        assert exc_info.value.plugin is plugin
        assert "1 个缺失依赖" in caplog.text

    def test_custom_comparator(self, registry, mocker):
        """测试使用自定义版本比较器"""
        comparator = mocker.Mock(spec=VersionComparator)
        comparator.compare.return_value = VersionRelation.NOT_IN_RANGE
        checker = DependencyChecker(version_comparator=comparator)

        with pytest.raises(DependencyError):
            checker.check(registry, metadata("p", requires=["a=2.0"]))

        comparator.compare.assert_called_once_with("2.0", "2.0")


class TestDependencyProblem:
    """测试依赖问题汇总"""

    def test_empty_problem_is_falsy(self):
        assert not DependencyProblem()

    def test_problem_with_entries_is_truthy(self):
        assert DependencyProblem(missing_required=[Dependency("x")])
        assert DependencyProblem(present_conflicting=[Dependency("y")])
