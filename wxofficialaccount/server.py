"""
公众号回调服务器(Flask)

独立的Flask进程,监听PORT(默认8001)
负责:
1. URL验证(GET)
2. 消息接收与被动回复(POST)
3. 健康检查(GET /healthz)

启动命令:
    python -m wxofficialaccount --echo
"""

import argparse
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, request

from .account import WxOfficialAccount
from .base import AccountConfigError
from .config.settings import Settings, missing_credentials
from .handlers import echo_handler

logger = logging.getLogger(__name__)


def create_app(account: WxOfficialAccount, callback_path: str = "/") -> Flask:
    """
    创建回调服务的 Flask 应用

    Args:
        account: 公众号客户端
        callback_path: 回调地址路径(与公众号后台配置的 URL 一致)

    Returns:
        Flask 应用
    """
    app = Flask(__name__)

    @app.route(callback_path, methods=["GET", "POST"])
    def wechat_callback():
        """公众号回调入口"""
        return account.handle_request(request)

    @app.route("/healthz", methods=["GET"])
    def healthz():
        return jsonify({"status": "ok", "safe_mode": account.safe_mode})

    return app


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="WeChat official account callback server")
    parser.add_argument("--host", default=None, help="监听地址(默认读取 HOST)")
    parser.add_argument("--port", type=int, default=None, help="监听端口(默认读取 PORT)")
    parser.add_argument("--path", default=None, help="回调路径(默认读取 CALLBACK_PATH)")
    parser.add_argument("--echo", action="store_true", help="使用 echo 处理函数回复文本消息")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    """主函数"""
    args = parse_args(argv)

    # 加载环境变量
    load_dotenv()
    settings = Settings()

    # 配置日志
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    missing = missing_credentials(settings)
    if missing:
        logger.error("❌ WeChat official account is not configured!")
        logger.error("   Required environment variables:")
        for var in missing:
            logger.error(f"   - {var}")
        sys.exit(1)

    try:
        account = WxOfficialAccount.from_settings(settings)
    except AccountConfigError as e:
        logger.error(f"❌ Failed to initialize official account: {e}")
        sys.exit(1)

    if args.echo:
        account.set_message_handler(echo_handler)

    host = args.host or settings.HOST
    port = args.port or settings.PORT
    callback_path = args.path or settings.CALLBACK_PATH

    app = create_app(account, callback_path)

    logger.info(f"🚀 Starting WeChat official account callback server on {host}:{port}{callback_path}...")
    try:
        app.run(host=host, port=port, debug=False, threaded=True)
    except KeyboardInterrupt:
        logger.info("Shutting down callback server...")
    finally:
        logger.info("✅ Callback server stopped")


if __name__ == '__main__':
    main()
