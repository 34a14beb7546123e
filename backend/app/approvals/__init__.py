# app/approvals/__init__.py
# 审批编排核心
#
# - orchestrator.py: 定时触发时发起审批流程、发送审批邮件
# - gateway.py:      处理审批链接点击，保证每个流程只决策一次
# - container.py:    按配置装配全部组件
