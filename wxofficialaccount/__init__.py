"""
wxofficialaccount - 微信公众号客户端的简单封装

提供:
- WxOfficialAccount: 回调服务(WSGI)、客服消息、模板消息
- TemplateMessage / TemplateDataItem: 模板消息数据模型
- SendResult: 主动发送结果

使用方式:
    from wxofficialaccount import WxOfficialAccount

    wx = WxOfficialAccount("appid", "appsecret", "token")
    wx.set_message_handler(handler)
    wx.send_custom_text_message("openid", "hello")
"""

__version__ = "1.0.0"

from .account import WxOfficialAccount
from .base import (
    AccountConfigError,
    InboundMessageError,
    MessageHandler,
    OfficialAccountError,
    SendResult,
    TemplateDataItem,
    TemplateMessage,
)
from .handlers import NOT_IMPLEMENTED_TEXT, echo_handler, not_implemented_handler
from .server import create_app

__all__ = [
    "WxOfficialAccount",
    "TemplateMessage",
    "TemplateDataItem",
    "SendResult",
    "MessageHandler",
    "OfficialAccountError",
    "AccountConfigError",
    "InboundMessageError",
    "NOT_IMPLEMENTED_TEXT",
    "not_implemented_handler",
    "echo_handler",
    "create_app",
]
