# trans_sync/exceptions.py
"""
本模块定义了 Trans-Sync 项目中所有自定义的、语义化的异常类型。

Worker 依据异常类型决定任务的去向：结构性错误直接失败，
其余错误在尝试次数未耗尽前回到 pending 等待下一次激活。
"""

from collections.abc import Sequence


class TransSyncError(Exception):
    """
    所有 Trans-Sync 自定义异常的通用基类。
    捕获此异常可以处理所有源自本项目的预期错误。
    """

    pass


class ConfigurationError(TransSyncError):
    """表示在加载、解析或验证配置时发生的错误。"""

    pass


class EngineNotFoundError(TransSyncError, KeyError):
    """
    表示尝试访问一个未注册的文本生成引擎。
    继承自 KeyError 是为了保持与字典查找行为的一致性。
    """

    pass


class DatabaseError(TransSyncError):
    """
    表示在持久化层（任务库、文档库）操作中发生的错误。
    通常是底层驱动异常或文件系统异常的包装。
    """

    pass


class APIError(TransSyncError):
    """
    表示与外部文本生成服务交互时发生的错误。
    例如网络问题、超时、API 密钥无效或服务返回错误状态码。
    """

    pass


class SourceDocumentMissingError(TransSyncError):
    """表示规范语言的源文档尚未发布，无法执行翻译。"""

    pass


class UnsupportedLocaleError(TransSyncError, ValueError):
    """请求的语言代码缺失或不在支持列表中。"""

    def __init__(self, locale: str | None, supported_locales: Sequence[str]):
        self.locale = locale
        self.supported_locales = list(supported_locales)
        super().__init__(
            f"不支持的语言代码: {locale!r}。支持的语言: {', '.join(self.supported_locales)}"
        )


class StructuralTranslationError(TransSyncError):
    """
    结构性翻译错误的基类。
    这类错误再次尝试也不会成功，任务会被直接标记为 failed。
    """

    pass


class BatchCountMismatchError(StructuralTranslationError):
    """批量翻译返回的条目数与输入条目数不一致。"""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"翻译结果数量不匹配: 期望 {expected} 条，实际 {actual} 条。")


class DelimiterCollisionError(StructuralTranslationError):
    """待翻译文本本身包含批量分隔符，无法保证位置对应。"""

    pass


class DocumentShapeError(TransSyncError, TypeError):
    """重建文档时，路径上的某个节点不是映射（属于编程错误）。"""

    pass


class CanonicalizationError(TransSyncError, ValueError):
    """文档无法按 RFC 8785 (JCS) 规范化，例如包含非字符串键或 NaN。"""

    pass
