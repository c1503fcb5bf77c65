"""
公共测试夹具
"""

import os
import sys

import pytest
from werkzeug.test import Client
from wechatpy.utils import WeChatSigner

# 添加项目根目录到 path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from wxofficialaccount import WxOfficialAccount

APP_ID = "wx1234567890abcdef"
APP_SECRET = "appsecret"
TOKEN = "token"
# 43 位 EncodingAESKey
ENCODING_AES_KEY = "abcdefghijklmnopqrstuvwxyz0123456789ABCDEFG"

TIMESTAMP = "1700000000"
NONCE = "nonce123"

TEXT_MESSAGE_XML = """<xml>
<ToUserName><![CDATA[gh_account]]></ToUserName>
<FromUserName><![CDATA[fromUser]]></FromUserName>
<CreateTime>1700000000</CreateTime>
<MsgType><![CDATA[text]]></MsgType>
<Content><![CDATA[hello]]></Content>
<MsgId>1234567890123456</MsgId>
</xml>"""

SUBSCRIBE_EVENT_XML = """<xml>
<ToUserName><![CDATA[gh_account]]></ToUserName>
<FromUserName><![CDATA[fromUser]]></FromUserName>
<CreateTime>1700000000</CreateTime>
<MsgType><![CDATA[event]]></MsgType>
<Event><![CDATA[subscribe]]></Event>
</xml>"""


def sign(token: str = TOKEN, timestamp: str = TIMESTAMP, nonce: str = NONCE) -> str:
    """按微信规则计算回调签名"""
    signer = WeChatSigner()
    signer.add_data(token, timestamp, nonce)
    return signer.signature


def signed_query(**extra) -> dict:
    """带有效签名的回调查询参数"""
    query = {"signature": sign(), "timestamp": TIMESTAMP, "nonce": NONCE}
    query.update(extra)
    return query


@pytest.fixture
def account():
    """明文模式的公众号客户端"""
    return WxOfficialAccount(APP_ID, APP_SECRET, TOKEN)


@pytest.fixture
def safe_account():
    """安全模式的公众号客户端"""
    return WxOfficialAccount(APP_ID, APP_SECRET, TOKEN, encoding_aes_key=ENCODING_AES_KEY)


@pytest.fixture
def http(account):
    """直接把 account 当作 WSGI 应用的测试客户端"""
    return Client(account)
