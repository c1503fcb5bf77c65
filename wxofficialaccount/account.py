"""
微信公众号封装

WxOfficialAccount 是对 wechatpy.WeChatClient 的简单封装:
1. 持有 WeChatClient(access_token 缓存由 wechatpy 的 session 存储负责)
2. 保存一个可替换的被动回复处理函数(message handler)
3. handle_request: 处理公众号回调请求(验签、解密、解析、调用处理函数、回复)
4. send_custom_text_message: 发送纯文本客服消息
5. send_template_message: 发送模板消息

WxOfficialAccount 本身是一个 WSGI 应用,可以直接挂载到任意路径提供回调服务。

使用方式:
    from wxofficialaccount import WxOfficialAccount

    wx = WxOfficialAccount("appid", "appsecret", "token")
    wx.set_message_handler(lambda msg: TextReply(message=msg, content=msg.content))
    wx.send_custom_text_message("openid", "hello")
"""

import logging
import threading
from typing import Optional
from xml.parsers.expat import ExpatError

import redis
import requests
from werkzeug.wrappers import Request, Response
from wechatpy import WeChatClient, create_reply, parse_message
from wechatpy.crypto import WeChatCrypto
from wechatpy.exceptions import (
    InvalidAppIdException,
    InvalidSignatureException,
    WeChatException,
)
from wechatpy.messages import BaseMessage
from wechatpy.session import SessionStorage
from wechatpy.session.memorystorage import MemoryStorage
from wechatpy.utils import check_signature

from .base import (
    AccountConfigError,
    InboundMessageError,
    MessageHandler,
    Reply,
    SendResult,
    TemplateMessage,
)
from .config.settings import Settings, get_settings, missing_credentials
from .handlers import not_implemented_handler
from .storage import build_session_storage

logger = logging.getLogger(__name__)

# 解析回调消息体时可能出现的错误(XML 格式错误、缺少字段、字段结构不对、base64/编码错误)
_PARSE_ERRORS = (ExpatError, AttributeError, KeyError, TypeError, ValueError)

# 主动发送时的错误: 微信接口返回错误 / 网络错误 / token 存储(Redis)不可用
_SEND_ERRORS = (WeChatException, requests.RequestException, redis.RedisError)


class WxOfficialAccount:
    """公众号客户端封装"""

    def __init__(
        self,
        app_id: str,
        app_secret: str,
        token: str,
        encoding_aes_key: Optional[str] = None,
        session: Optional[SessionStorage] = None,
    ):
        """
        初始化公众号客户端

        Args:
            app_id: 公众号 AppID
            app_secret: 公众号 AppSecret
            token: 公众号后台配置的 Token(用于回调验签)
            encoding_aes_key: 公众号后台配置的 EncodingAESKey,安全模式才需要
            session: access_token 存储,默认使用进程内存

        Raises:
            AccountConfigError: 缺少凭证或 wechatpy 客户端构造失败
        """
        missing = [
            name for name, value in
            (("app_id", app_id), ("app_secret", app_secret), ("token", token))
            if not value
        ]
        if missing:
            raise AccountConfigError(f"Missing required credentials: {', '.join(missing)}")

        self.app_id = app_id
        self.token = token

        if session is None:
            session = MemoryStorage()

        try:
            self._client = WeChatClient(app_id, app_secret, session=session)
        except Exception as e:
            raise AccountConfigError(f"Failed to create WeChat client: {e}") from e

        self._crypto: Optional[WeChatCrypto] = None
        if encoding_aes_key:
            try:
                self._crypto = WeChatCrypto(token, encoding_aes_key, app_id)
            except (AssertionError, ValueError) as e:
                raise AccountConfigError(f"Invalid encoding_aes_key: {e}") from e

        self._handler_lock = threading.Lock()
        self._message_handler: MessageHandler = not_implemented_handler

        logger.info(f"WxOfficialAccount initialized: app_id={app_id}, safe_mode={self.safe_mode}")

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "WxOfficialAccount":
        """
        根据配置构造公众号客户端

        WECHAT_TOKEN_STORAGE=redis 时 access_token 保存在 REDIS_URL 指向的 Redis 中。

        Raises:
            AccountConfigError: 缺少必需的环境变量
        """
        settings = settings or get_settings()

        missing = missing_credentials(settings)
        if missing:
            raise AccountConfigError(f"Missing required environment variables: {', '.join(missing)}")

        redis_url = settings.REDIS_URL if settings.WECHAT_TOKEN_STORAGE == "redis" else None
        session = build_session_storage(redis_url, key_prefix=settings.REDIS_KEY_PREFIX)

        return cls(
            settings.WECHAT_APP_ID,
            settings.WECHAT_APP_SECRET,
            settings.WECHAT_TOKEN,
            encoding_aes_key=settings.WECHAT_ENCODING_AES_KEY,
            session=session,
        )

    @property
    def client(self) -> WeChatClient:
        """底层的 wechatpy 客户端"""
        return self._client

    @property
    def safe_mode(self) -> bool:
        """是否配置了 EncodingAESKey(可处理安全模式消息)"""
        return self._crypto is not None

    # ==================== 被动回复 ====================

    @property
    def message_handler(self) -> MessageHandler:
        """当前生效的处理函数"""
        with self._handler_lock:
            return self._message_handler

    def set_message_handler(self, handler: MessageHandler) -> None:
        """
        设置处理回调消息的函数

        如果需要使用公众号回调服务,就应该调用该方法设置具体的消息处理逻辑,
        否则所有消息都会收到 "Server Error: Not Yet Implemented"。
        新的处理函数对之后到达的请求生效,正在处理中的请求继续使用旧的处理函数。

        Example:
            wx.set_message_handler(
                lambda msg: TextReply(message=msg, content=msg.content)
            )
        """
        with self._handler_lock:
            self._message_handler = handler
        logger.info(f"Message handler set: {getattr(handler, '__name__', repr(handler))}")

    def handle_request(self, request: Request) -> Response:
        """
        处理公众号回调请求

        流程:
        1. 验证签名(signature/timestamp/nonce)
        2. GET: URL 验证,原样返回 echostr
        3. POST: 解密(安全模式) → 解析消息 → 调用处理函数 → 渲染回复(安全模式下加密)

        验签失败返回 403,消息解析失败返回 400,均不带响应体。
        处理函数抛出的异常不在这里捕获。
        """
        # 每个请求只读取一次处理函数
        handler = self.message_handler

        if request.method not in ("GET", "POST"):
            return Response(status=405)

        signature = request.args.get("signature", "")
        timestamp = request.args.get("timestamp", "")
        nonce = request.args.get("nonce", "")

        try:
            check_signature(self.token, signature, timestamp, nonce)
        except InvalidSignatureException:
            logger.error(f"Signature verification failed: signature={signature}, timestamp={timestamp}")
            return Response(status=403)

        if request.method == "GET":
            logger.info("✅ URL validation successful")
            return Response(request.args.get("echostr", ""), mimetype="text/plain")

        encrypted = request.args.get("encrypt_type", "raw") == "aes"

        try:
            msg = self._parse_message(request, encrypted, timestamp, nonce)
        except (InvalidSignatureException, InvalidAppIdException) as e:
            logger.error(f"Message decryption rejected: {type(e).__name__}: {e}")
            return Response(status=403)
        except InboundMessageError as e:
            logger.error(f"Message parsing failed: {e}")
            return Response(status=400)

        logger.info(f"Received {msg.type} message from {msg.source}")

        reply = handler(msg)
        return self._render_reply(reply, msg, encrypted, timestamp, nonce)

    def _parse_message(
        self,
        request: Request,
        encrypted: bool,
        timestamp: str,
        nonce: str,
    ) -> BaseMessage:
        """解密并解析消息体"""
        body = request.get_data()

        if encrypted:
            if self._crypto is None:
                raise InboundMessageError("Received safe mode message but encoding_aes_key is not configured")
            msg_signature = request.args.get("msg_signature", "")
            try:
                body = self._crypto.decrypt_message(body, msg_signature, timestamp, nonce)
            except _PARSE_ERRORS as e:
                raise InboundMessageError(f"Malformed encrypted message: {type(e).__name__}: {e}") from e

        try:
            msg = parse_message(body)
        except _PARSE_ERRORS as e:
            raise InboundMessageError(f"Malformed message: {type(e).__name__}: {e}") from e

        if msg is None:
            raise InboundMessageError("Empty message body")
        return msg

    def _render_reply(
        self,
        reply: Reply,
        msg: BaseMessage,
        encrypted: bool,
        timestamp: str,
        nonce: str,
    ) -> Response:
        """渲染处理函数的回复,安全模式下加密"""
        if reply is None:
            return Response("", status=200)

        xml = create_reply(reply, message=msg).render()
        if not xml:
            return Response("", status=200)

        if encrypted:
            xml = self._crypto.encrypt_message(xml, nonce, timestamp)

        return Response(xml, mimetype="application/xml")

    def __call__(self, environ, start_response):
        """WSGI 入口,使 WxOfficialAccount 可以直接作为 HTTP 服务"""
        response = self.handle_request(Request(environ))
        return response(environ, start_response)

    # ==================== 主动发送 ====================

    def send_custom_text_message(self, to_user: str, text: str) -> SendResult:
        """
        发送纯文本客服消息

        client.message.send_text(to_user, text) 的 shorthand。
        发送失败只记录日志,不抛出异常,结果通过返回值告知调用方。
        本方法不做重试; access_token 过期时 wechatpy(auto_retry)会刷新 token 后重发一次。

        Args:
            to_user: 接收者 openid
            text: 消息内容

        Returns:
            SendResult: 发送结果
        """
        try:
            data = self._client.message.send_text(to_user, text)
        except _SEND_ERRORS as e:
            logger.error(f"send CustomMessage to {to_user} error: {e}")
            return SendResult(success=False, message="Failed to send custom message", error=str(e))

        logger.info(f"Custom message sent to {to_user}")
        return SendResult(success=True, message="Custom message sent", data=data)

    def send_template_message(self, msg: TemplateMessage) -> SendResult:
        """
        发送模板消息

        client.message.send_template(...) 的 shorthand,模板内容原样转发。
        发送失败只记录日志,不抛出异常。
        access_token 过期时的刷新重发由 wechatpy(auto_retry)负责,本方法不做重试。

        Example:
            msg = TemplateMessage(
                to_user="openid",
                template_id="template_id",
                url="https://www.example.com",
                data={"first": TemplateDataItem(value="Hello")},
            )
            wx.send_template_message(msg)
        """
        try:
            data = self._client.message.send_template(
                msg.to_user,
                msg.template_id,
                msg.to_wechat_data(),
                url=msg.url,
                mini_program=msg.mini_program,
            )
        except _SEND_ERRORS as e:
            errcode = getattr(e, "errcode", None)
            logger.error(
                f"send TemplateMessage (template_id={msg.template_id}, to={msg.to_user}, "
                f"errcode={errcode}) error: {e}"
            )
            return SendResult(success=False, message="Failed to send template message", error=str(e))

        msgid = (data or {}).get("msgid")
        logger.info(f"Template message sent to {msg.to_user}, msgid: {msgid}")
        return SendResult(success=True, message="Template message sent", data=data)
