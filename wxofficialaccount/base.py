"""
公众号封装层基础定义

包含:
1. 数据模型: TemplateMessage / TemplateDataItem / SendResult
2. 异常类: OfficialAccountError 及其子类

入站消息(InboundMessage)直接使用 wechatpy 解析出的消息/事件对象,
被动回复(OutboundReply)直接使用 wechatpy.replies 中的回复对象,这里不重复建模。
"""

from typing import Any, Callable, Dict, Optional, Union

from pydantic import BaseModel, Field
from wechatpy.messages import BaseMessage
from wechatpy.replies import BaseReply


# 处理函数可以返回 BaseReply、字符串(按文本回复处理)或 None(不回复)
Reply = Union[BaseReply, str, None]
MessageHandler = Callable[[BaseMessage], Reply]


class TemplateDataItem(BaseModel):
    """模板消息中单个字段的取值"""
    value: str = Field(..., description="字段内容")
    color: Optional[str] = Field(None, description="字体颜色(如 #173177),不填使用默认颜色")


class TemplateMessage(BaseModel):
    """模板消息"""
    to_user: str = Field(..., description="接收者 openid")
    template_id: str = Field(..., description="模板ID")
    url: Optional[str] = Field(None, description="点击模板消息跳转的链接")
    data: Dict[str, TemplateDataItem] = Field(default_factory=dict, description="模板字段名 → 字段值")
    mini_program: Optional[Dict[str, str]] = Field(
        None, description="跳转小程序所需数据(appid/pagepath),不需要跳小程序可不填"
    )

    def to_wechat_data(self) -> Dict[str, Dict[str, str]]:
        """
        转换为微信接口要求的 data 结构

        Returns:
            形如 {"first": {"value": "Hello"}} 的字典,未设置的 color 不输出
        """
        return {
            name: item.model_dump(exclude_none=True)
            for name, item in self.data.items()
        }


class SendResult(BaseModel):
    """主动发送消息的结果"""
    success: bool = Field(..., description="发送是否成功")
    message: Optional[str] = Field(None, description="结果说明")
    data: Optional[Dict[str, Any]] = Field(None, description="微信接口返回的数据")
    error: Optional[str] = Field(None, description="错误信息")


class OfficialAccountError(Exception):
    """公众号封装层异常基类"""
    pass


class AccountConfigError(OfficialAccountError):
    """构造公众号客户端失败(缺少凭证、AES Key 非法、token 存储不可用等)"""
    pass


class InboundMessageError(OfficialAccountError):
    """回调消息解密或解析失败"""
    pass
