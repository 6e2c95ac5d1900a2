"""QA Dashboard - Playwright 运行结果与手工测试进度看板"""

__version__ = "0.3.0"
