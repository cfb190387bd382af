from ai_automation.cli import main_entry


main_entry()
