from icon_designer.main import main

if __name__ == "__main__":
    main()
