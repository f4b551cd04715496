# -*- coding: utf-8 -*-
"""
plugkit 插件基础契约
提供插件基类、扩展点能力声明与能力判定
"""

import abc
import inspect
from typing import Any, Callable, Tuple, Type

IMPLEMENTS_ATTRIBUTE = "__implements__"


class Plugin(abc.ABC):
    """
    插件基础契约

    每个插件归档都应至少提供一个此契约的实现。扫描器总是把它作为扩展点，
    即使调用方没有显式列出。
    """

    pass


class ExtensionPoint(abc.ABC):
    """
    扩展点契约基类（可选）

    宿主程序可以继承此类定义扩展点，也可以直接使用任意类作为扩展点。
    """

    pass


def implements(*contracts: Type) -> Callable[[Type], Type]:
    """
    显式声明类实现的扩展点契约

    适用于无法通过继承或 ABC 注册表达的契约。声明只记录在类自身上，
    不会修改契约的注册表，因此不会在多次扫描之间泄漏状态。

    Args:
        contracts: 扩展点契约

    Returns:
        类装饰器

    Raises:
        TypeError: 任一契约不是类时抛出
    """
    for contract in contracts:
        if not inspect.isclass(contract):
            raise TypeError(f"扩展点契约必须是类: {contract!r}")

    def decorator(cls: Type) -> Type:
        declared = tuple(cls.__dict__.get(IMPLEMENTS_ATTRIBUTE, ()))
        setattr(cls, IMPLEMENTS_ATTRIBUTE, declared + tuple(c for c in contracts if c not in declared))
        return cls

    return decorator


def declared_contracts(cls: Type) -> Tuple[Type, ...]:
    """获取类（含父类）显式声明的契约"""
    declared = []
    for klass in inspect.getmro(cls):
        for contract in klass.__dict__.get(IMPLEMENTS_ATTRIBUTE, ()):
            if contract not in declared:
                declared.append(contract)
    return tuple(declared)


def satisfies(candidate: Any, contract: Type) -> bool:
    """
    判断类型是否满足扩展点契约

    满足条件：``issubclass`` 成立（包括 ABC 注册和 ``__subclasshook__``），
    或者类型通过 :func:`implements` 声明了该契约。契约本身不视为自己的实现。
    """
    if not inspect.isclass(candidate) or candidate is contract:
        return False
    try:
        if issubclass(candidate, contract):
            return True
    except TypeError:
        # 带数据成员的 Protocol 等不支持 issubclass 判定
        pass
    return any(
        declared is contract or _is_subclass(declared, contract)
        for declared in declared_contracts(candidate)
    )


def _is_subclass(declared: Type, contract: Type) -> bool:
    try:
        return issubclass(declared, contract)
    except TypeError:
        return False
