"""领域层模型与异常。

包含：
- models: Message / FunctionCall / ChatRequest / ChatReply 以及 QnA 请求响应模型。
- exceptions: 业务异常类型定义。
"""
