"""项目内使用的自定义异常定义。"""


class ImageDerivativesError(Exception):
    """基础异常类型。"""


class InvalidConfigurationError(ImageDerivativesError):
    """配置不合法时抛出。"""


class InvalidPathError(ImageDerivativesError):
    """文件名无法拆分为基础名与扩展名。"""


class SourceStatError(ImageDerivativesError):
    """源路径不存在或无法读取其元信息。"""


class SourceReadError(ImageDerivativesError):
    """源文件读取失败。"""


class DirectoryAccessError(ImageDerivativesError):
    """输出目录无法列出或清空。"""


class RenderError(ImageDerivativesError):
    """解码、缩放或写入输出文件失败。"""
