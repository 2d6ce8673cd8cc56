from binding_coverage.cli import main_entry

main_entry()
