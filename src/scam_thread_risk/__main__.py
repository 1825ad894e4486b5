from scam_thread_risk.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
