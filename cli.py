from typing_extensions import *

from automaton import LBA, BuildStep, grammar_to_lba
from grammar import Grammar, Production
from io_utils import load_from_file
from kuroda import NormalizationStep, to_kuroda_normal_form
from logging_config import setup_logger

HELP = """
Commands:
  LOADING:
    load <file>                  - Load grammars from file
    list                         - List all loaded items

  GRAMMAR OPERATIONS:
    show_grammar <name>          - Show grammar info
    check <name>                 - Check context-sensitivity and Kuroda normal form
    to_kuroda <name> [result]    - Convert to Kuroda normal form
    to_lba <name> [result]       - Convert Kuroda grammar to LBA (+ <result>_M blank eliminator)
    steps <name>                 - Show the steps that produced a grammar or LBA

  AUTOMATA OPERATIONS:
    show <name>                  - Show LBA info and transitions
    graph <name>                 - Visualize LBA

  GENERAL:
    delete <name>                - Delete item
    clear                        - Clear all
    exit                         - Exit
"""


def format_normalization_steps(steps: List[NormalizationStep]) -> str:
    if not steps:
        return "  Grammar was already in Kuroda normal form\n"
    result = ""
    for i, step in enumerate(steps, 1):
        result += f"  {i}. {step.description}\n"
        if step.new_variables:
            result += f"     new variables: {', '.join(step.new_variables)}\n"
        for old, new in step.replaced_productions.items():
            result += f"     {old}  =>  {', '.join(str(p) for p in new)}\n"
        for production in step.new_productions:
            result += f"     + {production}\n"
    return result


def format_build_steps(steps: Dict[Union[str, Production], BuildStep]) -> str:
    result = ""
    for key, step in steps.items():
        result += f"  {key}: states {', '.join(step.states) or '-'}\n"
        for transition in step.transitions:
            result += f"     {transition}\n"
    return result


def main():
    """Simple interactive terminal for Kuroda normal form and LBA construction."""
    setup_logger()

    grammars: Dict[str, Grammar] = {}
    automata: Dict[str, LBA] = {}
    history: Dict[str, str] = {}  # name -> formatted steps that produced it

    print("Kuroda & LBA Terminal - Type 'help' for commands\n")

    while True:
        try:
            command = input("> ").strip()
            if not command:
                continue

            parts = command.split()
            cmd = parts[0].lower()

            # Exit
            if cmd in ["exit", "quit"]:
                break

            # Help
            elif cmd == "help":
                print(HELP)

            # Load
            elif cmd == "load":
                if len(parts) < 2:
                    print("Usage: load <filename>")
                    continue
                try:
                    loaded = load_from_file(parts[1])
                    grammars.update(loaded)
                    if loaded:
                        print(f"Loaded {len(loaded)} grammars: {', '.join(loaded.keys())}")
                    else:
                        print("No items loaded")
                except Exception as e:
                    print(f"Error: {e}")

            # List
            elif cmd == "list":
                if grammars or automata:
                    if grammars:
                        print("Grammars:")
                        for name, gram in sorted(grammars.items()):
                            print(
                                f"  {name}: {len(gram.N)} non-terminals, {len(gram.P)} productions"
                            )
                    if automata:
                        print("Automata:")
                        for name, aut in sorted(automata.items()):
                            print(
                                f"  {name}: {len(aut.states)} states, {len(aut.transitions)} transitions"
                            )
                else:
                    print("Nothing loaded")

            # Show grammar info
            elif cmd == "show_grammar":
                if len(parts) < 2:
                    print("Usage: show_grammar <name>")
                elif parts[1] not in grammars:
                    print(f"Grammar not found: {parts[1]}")
                else:
                    print(grammars[parts[1]])

            # Check grammar shape
            elif cmd == "check":
                if len(parts) < 2:
                    print("Usage: check <name>")
                elif parts[1] not in grammars:
                    print(f"Grammar not found: {parts[1]}")
                else:
                    gram = grammars[parts[1]]
                    print(f"  context-sensitive: {'yes' if gram.is_context_sensitive() else 'no'}")
                    print(f"  Kuroda normal form: {'yes' if gram.is_kuroda() else 'no'}")

            # Convert grammar to Kuroda normal form
            elif cmd == "to_kuroda":
                if len(parts) < 2:
                    print("Usage: to_kuroda <name> [result]")
                elif parts[1] not in grammars:
                    print(f"Grammar not found: {parts[1]}")
                else:
                    try:
                        result_name = parts[2] if len(parts) > 2 else f"{parts[1]}_knf"
                        result = to_kuroda_normal_form(grammars[parts[1]])
                        grammars[result_name] = result.grammar
                        history[result_name] = format_normalization_steps(result.steps)
                        print(f"Created: {result_name}")
                    except Exception as e:
                        print(f"Error: {e}")

            # Convert Kuroda grammar to LBA
            elif cmd == "to_lba":
                if len(parts) < 2:
                    print("Usage: to_lba <name> [result]")
                elif parts[1] not in grammars:
                    print(f"Grammar not found: {parts[1]}")
                else:
                    try:
                        result_name = parts[2] if len(parts) > 2 else f"{parts[1]}_lba"
                        result = grammar_to_lba(grammars[parts[1]])
                        automata[result_name] = result.lba
                        history[result_name] = format_build_steps(result.steps)
                        created = [result_name]
                        if result.blank_eliminator is not None:
                            automata[f"{result_name}_M"] = result.blank_eliminator
                            created.append(f"{result_name}_M")
                        print(f"Created: {', '.join(created)}")
                    except Exception as e:
                        print(f"Error: {e}")

            # Show steps
            elif cmd == "steps":
                if len(parts) < 2:
                    print("Usage: steps <name>")
                elif parts[1] not in history:
                    print(f"No steps recorded for: {parts[1]}")
                else:
                    print(history[parts[1]])

            # Show automaton info
            elif cmd == "show":
                if len(parts) < 2:
                    print("Usage: show <name>")
                elif parts[1] not in automata:
                    print(f"Automaton not found: {parts[1]}")
                else:
                    aut = automata[parts[1]]
                    print(f"\n{parts[1]}:")
                    print(f"  States: {len(aut.states)}")
                    print(f"  Start: {aut.start_state}")
                    if aut.end_states:
                        print(f"  End: {', '.join(sorted(aut.end_states))}")
                    if aut.exit_state:
                        print(f"  Exit: {aut.exit_state}")
                    print(f"  Transitions: {len(aut.transitions)}")
                    for transition in sorted(aut.transitions, key=str):
                        print(f"    {transition}")
                    print()

            # Graph automaton
            elif cmd == "graph":
                if len(parts) < 2:
                    print("Usage: graph <name>")
                elif parts[1] not in automata:
                    print(f"Automaton not found: {parts[1]}")
                else:
                    try:
                        automata[parts[1]].to_graphviz(filename=parts[1], view=True)
                        print(f"Created: {parts[1]}.png")
                    except Exception as e:
                        print(f"Error: {e}")

            # Delete item
            elif cmd == "delete":
                if len(parts) < 2:
                    print("Usage: delete <name>")
                else:
                    deleted = False
                    if parts[1] in grammars:
                        del grammars[parts[1]]
                        deleted = True
                    if parts[1] in automata:
                        del automata[parts[1]]
                        deleted = True
                    history.pop(parts[1], None)
                    if deleted:
                        print(f"Deleted: {parts[1]}")
                    else:
                        print(f"Not found: {parts[1]}")

            # Clear all
            elif cmd == "clear":
                grammars.clear()
                automata.clear()
                history.clear()
                print("Cleared all")

            else:
                print(f"Unknown command: {cmd}")

        except KeyboardInterrupt:
            print("\nUse 'exit' to quit")
        except EOFError:
            break
        except Exception as e:
            print(f"Error: {e}")

    print("Goodbye!")


if __name__ == "__main__":
    main()
