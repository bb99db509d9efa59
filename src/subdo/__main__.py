from subdo.cli import main

main(prog_name="subdo")
