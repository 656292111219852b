"""
Runtime package: effect lifecycle and the stateful owners of a running machine.

Modules:
- effects.py: start_effects()/stop_effects() and the leak diagnostics
- session.py: Session, which starts effects as part of send()
- host.py: MachineHost, which defers effects to an explicit commit()
"""
