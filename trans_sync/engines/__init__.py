# trans_sync/engines/__init__.py
"""
文本生成引擎的注册表与工厂。

`discover_engines` 扫描本包下的模块并注册所有 `BaseGenerationEngine` 子类，
`create_engine_instance` 根据配置中的 `active_engine` 创建引擎实例。
"""

from __future__ import annotations

import importlib
import pkgutil
from typing import TYPE_CHECKING, Any

import structlog

from trans_sync.exceptions import ConfigurationError, EngineNotFoundError

from .base import BaseGenerationEngine

if TYPE_CHECKING:
    from trans_sync.config import TransSyncConfig

logger = structlog.get_logger(__name__)

ENGINE_REGISTRY: dict[str, type[BaseGenerationEngine[Any]]] = {}


def discover_engines() -> None:
    """动态发现本包下的所有引擎并注册（幂等）。"""
    if ENGINE_REGISTRY:
        return

    for module_info in pkgutil.iter_modules(__path__):
        module_name = module_info.name
        if module_name == "base" or module_name.startswith("_"):
            continue
        module = importlib.import_module(f"{__name__}.{module_name}")
        for attr in vars(module).values():
            if (
                isinstance(attr, type)
                and issubclass(attr, BaseGenerationEngine)
                and attr is not BaseGenerationEngine
            ):
                ENGINE_REGISTRY[attr.name()] = attr

    logger.debug("引擎发现完成。", registered=sorted(ENGINE_REGISTRY))


def create_engine_instance(
    config: "TransSyncConfig", engine_name: str | None = None
) -> BaseGenerationEngine[Any]:
    """
    根据引擎名称创建一个（尚未初始化的）文本生成引擎实例。

    Args:
        config: 完整的应用配置对象。
        engine_name: 引擎名称 ('debug', 'openai')；缺省使用 `config.active_engine`。

    Raises:
        EngineNotFoundError: 请求的引擎未注册。
        ConfigurationError: 引擎所需的配置缺失或无效。
    """
    discover_engines()
    name = engine_name or config.active_engine

    engine_class = ENGINE_REGISTRY.get(name)
    if engine_class is None:
        raise EngineNotFoundError(
            f"引擎 '{name}' 未找到。已注册的引擎: {sorted(ENGINE_REGISTRY)}"
        )

    # 'debug' 的配置位于 'debug_engine'，其余引擎与名称同名
    config_attr_name = f"{name}_engine" if name == "debug" else name
    engine_config_data = getattr(config, config_attr_name, None)
    if engine_config_data is None:
        raise ConfigurationError(
            f"引擎 '{name}' 的配置部分 (属性: {config_attr_name}) 在主配置中不存在。"
        )

    try:
        engine_config = engine_class.CONFIG_MODEL.model_validate(
            engine_config_data.model_dump()
        )
        engine = engine_class(config=engine_config)
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(f"创建引擎 '{name}' 实例时配置验证失败: {e}") from e

    logger.info("文本生成引擎已创建", engine=name)
    return engine


__all__ = [
    "ENGINE_REGISTRY",
    "BaseGenerationEngine",
    "create_engine_instance",
    "discover_engines",
]
