# app/__main__.py
# 命令行启动：python -m app [--host 0.0.0.0] [--port 8000]

import argparse

import uvicorn


def main() -> None:
    parser = argparse.ArgumentParser(description="SimpleWF Approval API")
    parser.add_argument("--host", default="0.0.0.0", help="监听地址")
    parser.add_argument("--port", type=int, default=8000, help="监听端口")
    args = parser.parse_args()

    uvicorn.run(
        "app.main:get_application",
        factory=True,
        host=args.host,
        port=args.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
