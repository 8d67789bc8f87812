from spotlight_cache.server import main


if __name__ == "__main__":
    main()
