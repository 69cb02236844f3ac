import logging


def main():
    try:
        from emebridge.cli import main as cli_main

        cli_main()
    except KeyboardInterrupt as e:
        if str(e) == "":
            logging.info("Program interrupted: User canceled")
        else:
            logging.warning(f"Program interrupted: {e}")


if __name__ == "__main__":
    main()
