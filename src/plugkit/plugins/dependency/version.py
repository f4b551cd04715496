# -*- coding: utf-8 -*-
"""
版本范围与版本比较

支持两类范围表达式：
1. 区间表达式：``[1.0]``、``[1.0,)``、``(,2.0]``、``[1.0,2.0)`` 等
2. PEP 440 版本规范：``>=1.0``、``>=1.0,<2.0``、``~=1.4``

无法解析为范围的表达式（如 ``1.0``）由比较器退化为字符串比较。
"""

import re
from enum import Enum
from typing import Optional

from packaging import specifiers, version

_INTERVAL_PATTERN = re.compile(
    r"^(?P<open>[\[(])\s*(?P<lower>[^,\[\]()\s]*)\s*"
    r"(?:(?P<comma>,)\s*(?P<upper>[^,\[\]()\s]*)\s*)?(?P<close>[\])])$"
)


class VersionRelation(Enum):
    """版本关系"""

    EQUAL = "equal"
    NOT_EQUAL = "not_equal"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IN_RANGE = "in_range"
    NOT_IN_RANGE = "not_in_range"

    @property
    def satisfied(self) -> bool:
        """依赖是否被满足"""
        return self in (VersionRelation.EQUAL, VersionRelation.IN_RANGE)


def compare_versions(left: str, right: str) -> int:
    """
    比较两个具体版本号

    两者都是合法的 PEP 440 版本时按版本语义比较，否则按字符串序比较。

    Returns:
        负数、0 或正数
    """
    try:
        left_version, right_version = version.Version(left), version.Version(right)
    except version.InvalidVersion:
        return (left > right) - (left < right)
    return (left_version > right_version) - (left_version < right_version)


class VersionRange:
    """
    版本范围

    构造时解析表达式，解析失败不会抛出异常，而是通过 :meth:`is_valid` 报告。
    """

    def __init__(self, expression: Optional[str]):
        self.expression = (expression or "").strip()
        self.lower: Optional[str] = None
        self.upper: Optional[str] = None
        self.lower_inclusive = False
        self.upper_inclusive = False
        self._specifier: Optional[specifiers.SpecifierSet] = None
        self._valid = self._parse()

    def _parse(self) -> bool:
        if not self.expression:
            return False

        match = _INTERVAL_PATTERN.match(self.expression)
        if match:
            return self._parse_interval(match)

        if self.expression[0] in "[]()" or self.expression[-1] in "[]()":
            return False

        try:
            self._specifier = specifiers.SpecifierSet(self.expression, prereleases=True)
        except specifiers.InvalidSpecifier:
            return False
        return len(self._specifier) > 0

    def _parse_interval(self, match: "re.Match") -> bool:
        lower, upper = match.group("lower"), match.group("upper")
        self.lower_inclusive = match.group("open") == "["
        self.upper_inclusive = match.group("close") == "]"

        if not match.group("comma"):
            # 精确版本只能写作 [x]
            if not lower or not (self.lower_inclusive and self.upper_inclusive):
                return False
            self.lower = self.upper = lower
            return True

        if not lower and not upper:
            return False
        self.lower = lower or None
        self.upper = upper or None

        if self.lower is not None and self.upper is not None:
            order = compare_versions(self.lower, self.upper)
            if order > 0:
                return False
            if order == 0 and not (self.lower_inclusive and self.upper_inclusive):
                return False
        return True

    def is_valid(self) -> bool:
        """表达式是否是结构化的范围"""
        return self._valid

    def contains(self, candidate: Optional[str]) -> bool:
        """
        判断具体版本是否落在范围内

        Args:
            candidate: 具体版本号

        Returns:
            范围无效或版本为空时返回 False
        """
        if not self._valid or not candidate:
            return False

        if self._specifier is not None:
            try:
                return self._specifier.contains(candidate, prereleases=True)
            except version.InvalidVersion:
                return False

        if self.lower is not None:
            order = compare_versions(candidate, self.lower)
            if order < 0 or (order == 0 and not self.lower_inclusive):
                return False
        if self.upper is not None:
            order = compare_versions(candidate, self.upper)
            if order > 0 or (order == 0 and not self.upper_inclusive):
                return False
        return True

    def __contains__(self, candidate: Optional[str]) -> bool:
        return self.contains(candidate)

    def __repr__(self) -> str:
        return f"VersionRange({self.expression!r}, valid={self._valid})"


class VersionComparator:
    """版本比较器：比较依赖要求的版本与实际版本"""

    def compare(self, required: Optional[str], actual: Optional[str]) -> VersionRelation:
        """
        比较要求版本与实际版本

        Args:
            required: 要求的版本或版本范围，为空表示不限制
            actual: 实际版本

        Returns:
            版本关系
        """
        if not required:
            return VersionRelation.IN_RANGE
        if not actual:
            return VersionRelation.NOT_EQUAL

        version_range = VersionRange(required)
        if version_range.is_valid():
            if version_range.contains(actual):
                return VersionRelation.IN_RANGE
            return VersionRelation.NOT_IN_RANGE

        if actual > required:
            return VersionRelation.GREATER_THAN
        if actual < required:
            return VersionRelation.LESS_THAN
        return VersionRelation.EQUAL
