"""领域层模型与协议。

包含：
- models: Message / Session 及其状态枚举。
- session: SessionStore 存储协议。
- clock: 可注入的时间来源。
- exceptions: 业务异常类型定义。
"""
