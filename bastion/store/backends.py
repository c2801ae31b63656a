from bastion.store.memory import memory_stores
from bastion.store.sql import sql_stores

BACKENDS = {
    "memory": memory_stores,
    "sql": sql_stores,
}


def build_stores(backend):
    try:
        factory = BACKENDS[backend]
    except KeyError:
        raise ValueError(f"Unknown STORE_BACKEND {backend!r}, expected one of {sorted(BACKENDS)}")
    return factory()
