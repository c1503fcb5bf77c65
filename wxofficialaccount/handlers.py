"""
常用的被动回复处理函数
"""

import logging

from wechatpy.messages import BaseMessage
from wechatpy.replies import TextReply

from .base import Reply

logger = logging.getLogger(__name__)

NOT_IMPLEMENTED_TEXT = "Server Error: Not Yet Implemented"


def not_implemented_handler(msg: BaseMessage) -> Reply:
    """
    默认处理函数

    只打印一条日志,并回复用户 "Server Error: Not Yet Implemented"。
    使用回调服务前应通过 WxOfficialAccount.set_message_handler 设置真正的处理逻辑。
    """
    logger.warning("WxOfficialAccount: message handler not yet implemented")
    return TextReply(message=msg, content=NOT_IMPLEMENTED_TEXT)


def echo_handler(msg: BaseMessage) -> Reply:
    """把用户发送的文本原样回复(加 "Req:" 前缀),其他类型的消息不回复"""
    if msg.type != "text":
        logger.info(f"Ignoring non-text message: {msg.type}")
        return None
    return TextReply(message=msg, content="Req:" + msg.content)
