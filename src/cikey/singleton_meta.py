"""
可重置的惰性单例元类.

用于进程级的默认配置持有者(例如默认存储后端选择器):
- 首次调用类时创建实例, 之后始终返回同一实例;
- 创建过程由类级锁保护, 多线程并发首次访问时只会构造一次;
- `reset()` 丢弃缓存实例, 下一次访问时按当前环境重新构造(测试与重新加载配置时使用).
"""

import threading


class SingletonMeta(type):
    _instances: dict = {}
    _lock = threading.Lock()

    def __call__(cls):
        instance = SingletonMeta._instances.get(cls)
        if instance is None:
            with SingletonMeta._lock:
                instance = SingletonMeta._instances.get(cls)
                if instance is None:
                    instance = super().__call__()
                    SingletonMeta._instances[cls] = instance
        return instance

    def instance(cls):
        return cls()

    def reset(cls) -> None:
        with SingletonMeta._lock:
            SingletonMeta._instances.pop(cls, None)
