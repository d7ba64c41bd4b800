"""Builders for small synthetic thread dumps."""


def thread_block(name: str, tid: str, *trace: str, state: str = "BLOCKED (on object monitor)") -> list[str]:
    """Lines of a minimal thread block ending with the separating blank line."""
    return [
        f'"{name}" #1 prio=5 os_prio=0 tid={tid} nid=0x1 waiting for monitor entry  [0x0]',
        f"   java.lang.Thread.State: {state}",
        *trace,
        "",
    ]


def dump_lines(*blocks: list[str]) -> list[str]:
    """A complete dump: date line, header, the given blocks and the JNI epilogue."""
    lines = ["2024-01-02 03:04:05", "Full thread dump Java HotSpot(TM) 64-Bit Server VM:", ""]
    for block in blocks:
        lines.extend(block)
    lines.append("JNI global refs: 1, weak refs: 0")
    return lines
