# app/workflows/__init__.py
# 流程引擎模块
#
# 目录结构：
# workflows/
# ├── __init__.py
# ├── types.py        # 共享数据类型（Item、Decision、WorkflowCommand）
# ├── scheme.py       # 流程方案（状态和命令的声明式定义）
# ├── engine.py       # TransitionEngine 接口 + 内存实现
# └── sql_engine.py   # 数据库持久化实现
#
# 核心概念：
# - Process: 一次审批流程，由流程 ID 唯一标识
# - Command: 流程在当前状态下可执行的操作（Start / Approve / Reject）
# - Scheme: 规定各状态下有哪些命令、执行后进入什么状态
#
# 审批核心从不直接读取流程状态，只通过 get_legal_commands / execute_command 交互。
