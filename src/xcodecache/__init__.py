"""xcodecache - discover, select and mirror the newest Xcode builds."""
