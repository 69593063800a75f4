"""HF Adaptor 顶层包。

把“发送消息 / 带历史发送消息 / 基于上下文提问”等高层操作
转换为对远端推理端点（TGI、OpenAI 兼容 chat/completions、QnA）的 HTTP 请求，
并把响应解码为文本、函数调用或答案区间。
"""

from hf_adaptor.adaptors import ChatAdaptor, QnAAdaptor, create_chat_adaptor, create_qna_adaptor

__all__ = ["ChatAdaptor", "QnAAdaptor", "create_chat_adaptor", "create_qna_adaptor"]
