"""
多模型 AI 网关的工作流节点包。

包含：
- settings：从环境变量 / .env 加载的配置
- logging_config：共享的日志配置
- errors：暴露给宿主的异常体系
- transport：端点解析、带重试的请求传输、熔断器、错误脱敏与响应抽取
- actions：每种能力一个处理函数，外加 (resource, operation) 路由
- host：执行上下文协议及本地进程内实现
- model_catalog：已知模型、模式默认值与模型选项加载
- node：节点描述与入口
"""
