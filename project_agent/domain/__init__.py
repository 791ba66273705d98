"""领域层模型与异常。

包含：
- models: Provider 交换模型与对外的会话结果模型。
- exceptions: 业务异常类型定义。
"""
