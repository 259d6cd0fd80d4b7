"""边界层：载荷转换、服务函数与 HTTP 绑定。"""
