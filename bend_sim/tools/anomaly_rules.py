# tools/anomaly_rules.py
def rule_halt_to_zero(event):
    # MEDITATE, or any jump that lands on address 0
    return ["pc_zero"] if event.get("next_pc") == 0 else []

def rule_self_loop(event):
    return ["self_loop"] if event.get("next_pc") == event.get("pc") else []

def rule_backward_branch(event):
    if not event.get("taken"):
        return []
    nxt, pc = event.get("next_pc"), event.get("pc")
    if nxt is None or pc is None or nxt == 0:
        return []
    return ["backward_branch"] if nxt < pc else []

def rule_avatar_jump(event):
    return ["avatar_jump"] if (event.get("op_name") == "GLIDE.A" and event.get("taken")) else []
