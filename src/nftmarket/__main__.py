from nftmarket.cli import cli


def main() -> None:
    cli(prog_name='nftmarket', standalone_mode=True)


if __name__ == '__main__':
    main()
