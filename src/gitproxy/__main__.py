from gitproxy.handlers.proxy_handler import main

if __name__ == "__main__":
    main()
