"""
Core package: machine description, compilation and the transition function.

Modules:
- hooks.py: hook kinds and lowering of assign/action into reducers
- builder.py: state/transition/immediate/internal/enter/exit constructors
- machine.py: compiled StateNode/Machine graph and compile_machine()
- validations.py: compile-time checks
- engine.py: RuntimeState and step()
- effects.py: EffectHandle values and the invoke wrapper
- events.py, errors.py: shared types
"""
